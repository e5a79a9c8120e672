[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fang"
version = "0.1.0"
description = "A background task queue with threaded workers, retries, cron scheduling and SQLite storage"
requires-python = ">=3.10"
dependencies = []
keywords = ["queue", "tasks", "background-jobs", "workers", "cron", "sqlite"]
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
    "Topic :: System :: Distributed Computing",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["fang"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
