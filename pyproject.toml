[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wundradb"
version = "0.1.0"
description = "A small SQL database engine with a B+ tree store, a write-ahead log and a line-based TCP server"
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "sql", "b+tree", "write-ahead-log", "raft"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
wundradb-server = "wundradb.server:main"
wundradb-cli = "wundradb.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["wundradb"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
