"""Read CI build results: directory walks, job metadata, JUnit suites and bucket build listings."""

__version__ = "0.1.0"