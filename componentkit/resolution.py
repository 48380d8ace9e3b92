"""Resolutions of dependencies to registry releases or local paths."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

import semver

from componentkit.dependency import (
    DEFAULT_REGISTRY_NAME,
    Dependency,
    LocalDependency,
    RegistryError,
)
from componentkit.names import PackageName, VersionReq

VersionLike = Union[str, semver.Version]
Locked = Union[Tuple[VersionLike, str], object]


def _as_version(version: VersionLike) -> semver.Version:
    if isinstance(version, semver.Version):
        return version
    return semver.Version.parse(str(version))


def _as_requirement(requirement: Union[VersionReq, str]) -> VersionReq:
    if isinstance(requirement, VersionReq):
        return requirement
    return VersionReq.parse(requirement)


@dataclass(frozen=True)
class Release:
    """A published release of a package.

    ``content`` is the digest of the release contents, or ``None`` when the
    release has been yanked.
    """

    version: semver.Version
    content: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "version", _as_version(self.version))

    @property
    def yanked(self) -> bool:
        """Whether the release no longer has content."""
        return self.content is None


@dataclass(frozen=True)
class RegistryResolution:
    """A dependency resolved to a registry package release."""

    name: PackageName
    package: PackageName
    registry: Optional[str]
    requirement: VersionReq
    version: semver.Version
    digest: str
    path: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "version", _as_version(self.version))
        object.__setattr__(self, "path", Path(self.path))
        if self.registry == DEFAULT_REGISTRY_NAME:
            object.__setattr__(self, "registry", None)

    def key(self) -> Tuple[PackageName, Optional[str]]:
        """The key used to sort and search the lock file package list."""
        return (self.package, self.registry)


@dataclass(frozen=True)
class LocalResolution:
    """A dependency resolved to a local directory or file."""

    name: PackageName
    path: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))

    @property
    def version(self) -> None:
        """Local dependencies have no resolved version."""
        return None

    def key(self) -> None:
        """Local dependencies do not appear in the lock file."""
        return None


DependencyResolution = Union[RegistryResolution, LocalResolution]


def find_latest_release(
    releases: Iterable[Release], requirement: Union[VersionReq, str]
) -> Optional[Release]:
    """The highest non-yanked release satisfying the requirement, if any."""
    req = _as_requirement(requirement)
    candidates = [
        release
        for release in releases
        if release.content is not None and req.matches(release.version)
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda release: release.version)


def _unpack_locked(locked: Locked) -> Tuple[semver.Version, str]:
    if isinstance(locked, tuple):
        version, digest = locked
    else:
        version, digest = locked.version, locked.digest  # type: ignore[attr-defined]
    return _as_version(version), str(digest)


def select_release(
    package: Union[PackageName, str],
    releases: Iterable[Release],
    requirement: Union[VersionReq, str],
    locked: Optional[Locked] = None,
) -> Release:
    """Choose the release of ``package`` that satisfies a dependency.

    A locked version is preferred when it is still available, and its digest
    must match the lock file; otherwise the latest matching release is used.
    """
    req = _as_requirement(requirement)
    releases = list(releases)
    release: Optional[Release] = None

    if locked is not None:
        version, digest = _unpack_locked(locked)
        exact = find_latest_release(releases, VersionReq.exact(version))
        if exact is not None:
            if exact.content != digest:
                raise RegistryError(
                    f"component registry package `{package}` (v`{version}`) has digest "
                    f"`{exact.content}` but the lock file specifies digest `{digest}`"
                )
            release = exact

    if release is None:
        release = find_latest_release(releases, req)

    if release is None:
        raise RegistryError(
            f"component registry package `{package}` has no release matching "
            f"version requirement `{req}`"
        )
    return release


def resolve_local(name: Union[PackageName, str], dependency: Dependency) -> LocalResolution:
    """Resolve a local path dependency immediately."""
    if not isinstance(dependency, LocalDependency):
        raise RegistryError(f"dependency `{name}` is not a local path dependency")
    if isinstance(name, str):
        name = PackageName.parse(name)
    return LocalResolution(name=name, path=dependency.path)