[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "registry-operator"
version = "1.2.0.dev0"
description = "Reconciliation core for a schema registry operator: control loop, env. variable cache, conditions, status and resource patching"
requires-python = ">=3.10"
dependencies = []
keywords = ["operator", "kubernetes", "reconciliation", "control-loop", "registry"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["registry_operator"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
