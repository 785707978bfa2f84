[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mmdvmdsp"
version = "0.1.0"
description = "Fixed-point modem signal processing for P25 and POCSAG digital voice and paging"
requires-python = ">=3.10"
dependencies = []
keywords = ["ham radio", "p25", "pocsag", "modem", "dsp", "fixed point", "fir filter"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mmdvmdsp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
