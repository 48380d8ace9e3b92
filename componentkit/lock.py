"""The dependency lock file and advisory file locks."""

from __future__ import annotations

import errno
import io
import logging
import os
import re
from bisect import bisect_left
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, List, Mapping, Optional, Tuple, Union

import portalocker
import semver
import tomlkit
from tomlkit.exceptions import TOMLKitError

from componentkit.dependency import DEFAULT_REGISTRY_NAME
from componentkit.names import PackageName, VersionReq

log = logging.getLogger(__name__)

LOCK_FILE_VERSION = 1

_DIGEST_RE = re.compile(r"^sha256:[0-9a-f]{64}$")

_UNSUPPORTED_ERRNOS = {
    code
    for code in (
        getattr(errno, "ENOTSUP", None),
        getattr(errno, "EOPNOTSUPP", None),
        getattr(errno, "ENOSYS", None),
    )
    if code is not None
}
_WINDOWS_ERROR_INVALID_FUNCTION = 1


class LockError(Exception):
    """A lock file is malformed or a file lock could not be taken."""


@dataclass
class LockedPackageVersion:
    """A version a package is locked to for one requirement."""

    requirement: str
    version: semver.Version
    digest: str

    def key(self) -> str:
        """The sort key of this entry within its package."""
        return self.requirement


@dataclass
class LockedPackage:
    """A locked package and the versions resolved for it."""

    name: PackageName
    registry: Optional[str] = None
    versions: List[LockedPackageVersion] = field(default_factory=list)

    def key(self) -> Tuple[PackageName, str]:
        """The key used to sort and search the package list."""
        return (
            self.name,
            self.registry if self.registry is not None else DEFAULT_REGISTRY_NAME,
        )


def _require(entry: Mapping[str, Any], key: str, kind: type, what: str) -> Any:
    if key not in entry:
        raise ValueError(f"missing field `{key}` in {what}")
    value = entry[key]
    if not isinstance(value, kind) or isinstance(value, bool):
        raise ValueError(f"invalid type for `{key}` in {what}")
    return value


def _parse_version_entry(entry: Any) -> LockedPackageVersion:
    if not isinstance(entry, Mapping):
        raise ValueError("expected a table for a locked package version")
    requirement = _require(entry, "requirement", str, "locked package version")
    version = semver.Version.parse(
        _require(entry, "version", str, "locked package version")
    )
    digest = _require(entry, "digest", str, "locked package version")
    if not _DIGEST_RE.match(digest):
        raise ValueError(f"invalid content digest `{digest}`")
    return LockedPackageVersion(requirement, version, digest)


def _parse_package(entry: Any) -> LockedPackage:
    if not isinstance(entry, Mapping):
        raise ValueError("expected a table for a locked package")
    name = PackageName.parse(_require(entry, "name", str, "locked package"))
    registry = entry.get("registry")
    if registry is not None and not isinstance(registry, str):
        raise ValueError("invalid type for `registry` in locked package")
    versions = entry.get("version", [])
    if not isinstance(versions, list):
        raise ValueError("invalid type for `version` in locked package")
    return LockedPackage(name, registry, [_parse_version_entry(v) for v in versions])


@dataclass
class LockFile:
    """The resolved dependencies of a previous build.

    The package list is expected to be sorted by ``LockedPackage.key``.
    """

    packages: List[LockedPackage] = field(default_factory=list)
    version: int = LOCK_FILE_VERSION

    @classmethod
    def loads(cls, text: str) -> "LockFile":
        """Parse a lock file from its TOML text."""
        try:
            document = tomlkit.parse(text)
        except TOMLKitError as exc:
            raise LockError(f"failed to parse lock file: {exc}") from exc

        data = document.unwrap()
        if "version" not in data:
            raise LockError("missing file format version")
        version = data["version"]
        if isinstance(version, bool) or not isinstance(version, int):
            raise LockError("file format version is not an integer")
        if version != LOCK_FILE_VERSION:
            raise LockError(f"unsupported file format version {version}")

        try:
            raw_packages = data.get("package", [])
            if not isinstance(raw_packages, list):
                raise ValueError("invalid type for `package`")
            packages = [_parse_package(p) for p in raw_packages]
        except ValueError as exc:
            raise LockError(f"invalid file format: {exc}") from exc
        return cls(packages=packages, version=version)

    def dumps(self, app: str) -> str:
        """Render the lock file with a header naming ``app``."""
        document = tomlkit.document()
        document.add("version", self.version)
        if self.packages:
            packages = tomlkit.aot()
            for package in self.packages:
                table = tomlkit.table()
                table.add("name", str(package.name))
                if package.registry is not None:
                    table.add("registry", package.registry)
                if package.versions:
                    versions = tomlkit.aot()
                    for locked in package.versions:
                        entry = tomlkit.table()
                        entry.add("requirement", locked.requirement)
                        entry.add("version", str(locked.version))
                        entry.add("digest", locked.digest)
                        versions.append(entry)
                    table.add("version", versions)
                packages.append(table)
            document.add("package", packages)
        header = (
            f"# This file is automatically generated by {app}.\n"
            "# It is not intended for manual editing.\n"
        )
        return header + tomlkit.dumps(document)

    @classmethod
    def read(cls, file: Any) -> "LockFile":
        """Read a lock file from an open file or ``FileLock``."""
        contents = file.read()
        if isinstance(contents, bytes):
            try:
                contents = contents.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise LockError("lock file is not UTF-8 encoded") from exc
        return cls.loads(contents)

    def write(self, file: Any, app: str) -> None:
        """Replace the contents of an open file or ``FileLock`` with this lock file."""
        target = file.file if isinstance(file, FileLock) else file
        text = self.dumps(app)
        target.seek(0)
        target.truncate()
        if isinstance(target, io.TextIOBase):
            target.write(text)
        else:
            target.write(text.encode("utf-8"))
        target.flush()


class LockFileResolver:
    """Resolves dependency requirements against a lock file."""

    def __init__(self, lock_file: LockFile) -> None:
        self.lock_file = lock_file

    def resolve(
        self,
        registry: str,
        name: PackageName,
        requirement: Union[VersionReq, str],
    ) -> Optional[LockedPackageVersion]:
        """The locked version for the requirement, or ``None`` if not locked."""
        requirement_text = str(requirement)
        packages = self.lock_file.packages
        keys = [p.key() for p in packages]
        index = bisect_left(keys, (name, registry))
        if index < len(keys) and keys[index] == (name, registry):
            versions = packages[index].versions
            version_keys = [v.key() for v in versions]
            found = bisect_left(version_keys, requirement_text)
            if found < len(version_keys) and version_keys[found] == requirement_text:
                locked = versions[found]
                log.info(
                    "dependency package `%s` from registry `%s` with requirement `%s` "
                    "was resolved by the lock file to version %s",
                    name, registry, requirement_text, locked.version,
                )
                return locked

        log.info(
            "dependency package `%s` from registry `%s` with requirement `%s` "
            "was not in the lock file",
            name, registry, requirement_text,
        )
        return None


def _is_unsupported(exc: BaseException) -> bool:
    cause = exc.__cause__ if exc.__cause__ is not None else exc
    if not isinstance(cause, OSError):
        return False
    if getattr(cause, "winerror", None) == _WINDOWS_ERROR_INVALID_FUNCTION:
        return True
    return cause.errno in _UNSUPPORTED_ERRNOS


class FileLock:
    """An open file holding a shared or exclusive advisory lock."""

    def __init__(self, file: BinaryIO, path: Path) -> None:
        self._file = file
        self._path = path
        self._closed = False

    @property
    def path(self) -> Path:
        """The path of the locked file."""
        return self._path

    @property
    def file(self) -> BinaryIO:
        """The underlying file object."""
        return self._file

    @classmethod
    def try_open_rw(cls, path: Union[str, os.PathLike]) -> Optional["FileLock"]:
        """Take an exclusive lock, creating the file; ``None`` if it is held elsewhere."""
        return cls._open(Path(path), exclusive=True, try_lock=True)

    @classmethod
    def open_rw(cls, path: Union[str, os.PathLike]) -> "FileLock":
        """Take an exclusive lock, creating the file and blocking until acquired."""
        lock = cls._open(Path(path), exclusive=True, try_lock=False)
        assert lock is not None
        return lock

    @classmethod
    def try_open_ro(cls, path: Union[str, os.PathLike]) -> Optional["FileLock"]:
        """Take a shared lock on an existing file; ``None`` if it is held exclusively."""
        return cls._open(Path(path), exclusive=False, try_lock=True)

    @classmethod
    def open_ro(cls, path: Union[str, os.PathLike]) -> "FileLock":
        """Take a shared lock on an existing file, blocking until acquired."""
        lock = cls._open(Path(path), exclusive=False, try_lock=False)
        assert lock is not None
        return lock

    @staticmethod
    def _open_file(path: Path, exclusive: bool) -> BinaryIO:
        if exclusive:
            fd = os.open(path, os.O_RDWR | os.O_CREAT | getattr(os, "O_BINARY", 0), 0o666)
            return os.fdopen(fd, "r+b")
        return open(path, "rb")

    @classmethod
    def _open(cls, path: Path, *, exclusive: bool, try_lock: bool) -> Optional["FileLock"]:
        try:
            try:
                file = cls._open_file(path, exclusive)
            except FileNotFoundError:
                if not exclusive:
                    raise
                path.parent.mkdir(parents=True, exist_ok=True)
                file = cls._open_file(path, exclusive)
        except OSError as exc:
            raise LockError(f"failed to open `{path}`: {exc}") from exc

        flags = portalocker.LockFlags.EXCLUSIVE if exclusive else portalocker.LockFlags.SHARED
        if try_lock:
            flags |= portalocker.LockFlags.NON_BLOCKING

        try:
            portalocker.lock(file, flags)
        except portalocker.exceptions.AlreadyLocked as exc:
            if try_lock:
                file.close()
                return None
            file.close()
            raise LockError(f"failed to lock file `{path}`") from exc
        except portalocker.exceptions.LockException as exc:
            if not _is_unsupported(exc):
                file.close()
                raise LockError(f"failed to lock file `{path}`") from exc
        return cls(file, path)

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes, or all remaining bytes."""
        return self._file.read(size)

    def write(self, data: Union[bytes, str]) -> int:
        """Write bytes, or text encoded as UTF-8."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        return self._file.write(data)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the file position."""
        return self._file.seek(offset, whence)

    def close(self) -> None:
        """Release the lock and close the file."""
        if self._closed:
            return
        self._closed = True
        try:
            portalocker.unlock(self._file)
        except (portalocker.exceptions.LockException, OSError):
            pass
        self._file.close()

    def __enter__(self) -> "FileLock":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()