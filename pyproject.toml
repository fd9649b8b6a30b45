[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tdsproto"
version = "0.1.0"
description = "Pure-Python helpers for the SQL Server TDS wire protocol: packet framing, token parsing, type metadata and instance discovery."
requires-python = ">=3.10"
dependencies = []
keywords = ["tds", "sqlserver", "mssql", "protocol", "database"]
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
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tdsproto"]

[tool.pytest.ini_options]
addopts = "-ra"
