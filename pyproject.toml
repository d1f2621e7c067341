[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hycore"
version = "0.1.0"
description = "Congestion control for a QUIC-based proxy: BBR bandwidth sampling, pacing and a fixed-rate Brutal sender"
requires-python = ">=3.10"
dependencies = []
keywords = ["proxy", "quic", "congestion-control", "bbr", "pacing", "bandwidth"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["hycore"]

[tool.hatch.build.targets.sdist]
include = ["hycore", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
