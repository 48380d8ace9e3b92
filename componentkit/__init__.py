"""Core tooling for WebAssembly component projects: names, dependencies, lock files, release selection, terminal output and release helpers."""

__version__ = "0.1.0"

__all__ = [
    "command",
    "dependency",
    "lock",
    "names",
    "release",
    "resolution",
    "terminal",
]