import pytest

from hycore.congestion.ringbuffer import RingBuffer


def test_fifo_order_and_growth_past_capacity():
    ring = RingBuffer(2)
    items = list(range(10))
    for item in items:
        ring.push_back(item)
    assert len(ring) == len(items)
    assert [ring.pop_front() for _ in items] == items
    assert ring.empty()


def test_zero_capacity_still_grows():
    ring = RingBuffer(0)
    ring.push_back("a")
    ring.push_back("b")
    assert len(ring) == 2
    assert ring.front() == "a"
    assert ring.back() == "b"


def test_indexing_follows_front_after_pops():
    ring = RingBuffer(4)
    for item in "abcdef":
        ring.push_back(item)
    ring.pop_front()
    ring.pop_front()
    assert [ring[i] for i in range(len(ring))] == list("cdef")
    assert ring[0] == ring.front()
    assert ring[len(ring) - 1] == ring.back()
    assert list(ring) == list("cdef")


def test_front_and_back_return_references():
    ring = RingBuffer(1)
    ring.push_back([1])
    ring.front().append(2)
    assert ring.back() == [1, 2]


def test_index_out_of_range():
    ring = RingBuffer(4)
    ring.push_back("x")
    with pytest.raises(IndexError):
        ring[1]
    with pytest.raises(IndexError):
        RingBuffer(4)[0]


@pytest.mark.parametrize("method", ["pop_front", "front", "back"])
def test_empty_access_raises(method):
    with pytest.raises(IndexError):
        getattr(RingBuffer(3), method)()


def test_clear_empties_buffer():
    ring = RingBuffer(3)
    for item in range(5):
        ring.push_back(item)
    ring.clear()
    assert ring.empty()
    assert len(ring) == 0
    ring.push_back("next")
    assert ring.pop_front() == "next"


def test_negative_capacity_rejected():
    with pytest.raises(ValueError):
        RingBuffer(-1)