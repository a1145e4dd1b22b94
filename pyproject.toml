[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "leafslice"
version = "0.1.0"
description = "Split model weights into content-addressed layer slices, store them on disk and run models from them"
requires-python = ">=3.10"
dependencies = []
keywords = ["neural-network", "inference", "weights", "deduplication", "slices"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["leafslice"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
