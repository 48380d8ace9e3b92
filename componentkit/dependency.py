"""Dependency declarations and registry lookup."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from componentkit.names import PackageName, VersionReq

DEFAULT_REGISTRY_NAME = "default"

_ENTRY_FIELDS = ("path", "package", "version", "registry")


class RegistryError(ValueError):
    """A dependency declaration or registry configuration is invalid."""


def find_url(
    name: Optional[str],
    urls: Mapping[str, str],
    default: Optional[str] = None,
) -> str:
    """Find the URL of the named registry, falling back to ``default``."""
    name = DEFAULT_REGISTRY_NAME if name is None else name
    url = urls.get(name)
    if url is not None:
        return str(url)
    if name != DEFAULT_REGISTRY_NAME:
        raise RegistryError(
            f"component registry `{name}` does not exist in the configuration"
        )
    if default is None:
        raise RegistryError("a default component registry has not been set")
    return default


@dataclass(frozen=True)
class RegistryPackage:
    """A reference to a package in a component registry."""

    version: VersionReq
    name: Optional[PackageName] = None
    registry: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "RegistryPackage":
        """Parse a bare version requirement."""
        try:
            version = VersionReq.parse(text)
        except ValueError as exc:
            raise RegistryError(
                f"'{text}' is an invalid registry package version"
            ) from exc
        return cls(version=version)


@dataclass(frozen=True)
class LocalDependency:
    """A dependency on a local directory or file."""

    path: Path


Dependency = Union[RegistryPackage, LocalDependency]


def _string_field(entry: Mapping[str, Any], key: str) -> Optional[str]:
    value = entry.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise RegistryError(f"invalid type for `{key}`, expected a string")
    return value


def parse_dependency(value: Union[str, Mapping[str, Any]]) -> Dependency:
    """Parse a dependency given as a version string or a table."""
    if isinstance(value, str):
        return RegistryPackage.parse(value)
    if not isinstance(value, Mapping):
        raise RegistryError("invalid type: expected a string or a table")

    for key in value:
        if key not in _ENTRY_FIELDS:
            expected = ", ".join(f"`{f}`" for f in _ENTRY_FIELDS)
            raise RegistryError(f"unknown field `{key}`, expected one of {expected}")

    raw_path = value.get("path")
    if raw_path is not None and not isinstance(raw_path, (str, os.PathLike)):
        raise RegistryError("invalid type for `path`, expected a string")
    path = Path(raw_path) if raw_path is not None else None

    package_text = _string_field(value, "package")
    try:
        package = PackageName.parse(package_text) if package_text is not None else None
    except ValueError as exc:
        raise RegistryError(str(exc)) from exc

    version_text = _string_field(value, "version")
    try:
        version = VersionReq.parse(version_text) if version_text is not None else None
    except ValueError as exc:
        raise RegistryError(str(exc)) from exc

    registry = _string_field(value, "registry")

    if path is not None:
        if package is not None:
            raise RegistryError(
                "cannot specify both `path` and `package` fields in a dependency entry"
            )
        if version is not None:
            raise RegistryError(
                "cannot specify both `path` and `version` fields in a dependency entry"
            )
        if registry is not None:
            raise RegistryError(
                "cannot specify both `path` and `registry` fields in a dependency entry"
            )
        return LocalDependency(path)

    if version is not None:
        return RegistryPackage(version=version, name=package, registry=registry)
    if package is None:
        raise RegistryError("missing field `package`")
    raise RegistryError("missing field `version`")


def dependency_to_toml(dependency: Dependency) -> Union[str, Dict[str, str]]:
    """The value a dependency is written as in a manifest."""
    if isinstance(dependency, LocalDependency):
        return {"path": str(dependency.path)}
    version = str(dependency.version).lstrip("^")
    if dependency.name is None and dependency.registry is None:
        return version
    entry: Dict[str, str] = {}
    if dependency.name is not None:
        entry["package"] = str(dependency.name)
    entry["version"] = version
    if dependency.registry is not None:
        entry["registry"] = dependency.registry
    return entry