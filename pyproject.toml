[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kvops"
version = "0.1.0"
description = "Redis operations for counters, sequences, strings, hashes, collections and room queries"
requires-python = ">=3.10"
keywords = ["redis", "counters", "sequences", "hashes", "sorted-sets", "rooms"]
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
    "Topic :: Database :: Front-Ends",
]
dependencies = [
    "redis",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["kvops"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
