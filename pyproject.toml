[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gpsreceiver"
version = "1.0.0"
description = "GPS L1 C/A software receiver blocks: acquisition, tracking, navigation decoding and position solution"
requires-python = ">=3.10"
keywords = ["gps", "gnss", "sdr", "navigation", "acquisition", "tracking", "ephemeris"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: GIS",
]
dependencies = [
    "numpy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gpsreceiver"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
