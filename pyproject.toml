[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gridscan"
version = "0.1.0"
description = "Read CI build results from bucket storage: job metadata, JUnit suites and build listings"
requires-python = ">=3.10"
dependencies = []
keywords = ["ci", "junit", "testgrid", "gcs", "build-results"]
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
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["gridscan"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
