[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "componentkit"
version = "0.1.0"
description = "Core tooling for WebAssembly component projects: lock files, dependency declarations, release selection, terminal output and release helpers"
requires-python = ">=3.10"
keywords = ["webassembly", "component", "wit", "lock-file", "registry", "build"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]
dependencies = [
    "tomlkit",
    "portalocker",
    "semver",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
componentkit-release = "componentkit.release:main"

[tool.hatch.build.targets.wheel]
packages = ["componentkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
