[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "opendid-oracle"
version = "0.1.0"
description = "An in-memory model of the opendid oracle program: fee settings, job-to-OVN mappings, oracle requests, fulfilment and claims"
requires-python = ">=3.10"
dependencies = []
keywords = ["oracle", "opendid", "ledger", "simulation", "fees"]
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
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["opendid_oracle"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
