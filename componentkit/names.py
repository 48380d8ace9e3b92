"""Package names and semantic version requirements."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

import semver

_WILDCARDS = ("*", "x", "X")

_COMPARATOR_RE = re.compile(
    r"^(?P<op>>=|<=|>|<|=|~|\^)?\s*"
    r"(?P<major>\d+)"
    r"(?:\.(?P<minor>\d+|[*xX]))?"
    r"(?:\.(?P<patch>\d+|[*xX]))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.-]+))?$"
)


def _is_kebab_case(text: str) -> bool:
    lower = upper = False
    for ch in text:
        if "a" <= ch <= "z":
            if upper:
                return False
            lower = True
        elif "A" <= ch <= "Z":
            if lower:
                return False
            upper = True
        elif "0" <= ch <= "9":
            if not (lower or upper):
                return False
        elif ch == "-":
            if not (lower or upper):
                return False
            lower = upper = False
        else:
            return False
    return bool(text) and not text.endswith("-")


@dataclass(frozen=True, order=True)
class PackageName:
    """A registry package name of the form ``namespace:name``."""

    id: str

    def __post_init__(self) -> None:
        colon = self.id.rfind(":")
        if colon < 0:
            raise ValueError(
                f"package name `{self.id}` is missing a namespace separator (e.g. `foo:bar`)"
            )
        namespace, name = self.id[:colon], self.id[colon + 1 :]
        if not _is_kebab_case(namespace):
            raise ValueError(f"package namespace `{namespace}` is not in kebab case")
        if not _is_kebab_case(name):
            raise ValueError(f"package name `{name}` is not in kebab case")

    @classmethod
    def parse(cls, text: str) -> "PackageName":
        """Parse and validate a package name."""
        return cls(text)

    @property
    def namespace(self) -> str:
        """The part before the colon."""
        return self.id[: self.id.rfind(":")]

    @property
    def name(self) -> str:
        """The part after the colon."""
        return self.id[self.id.rfind(":") + 1 :]

    def __str__(self) -> str:
        return self.id


class Op(enum.Enum):
    """The operator of a version comparator."""

    EXACT = "="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    TILDE = "~"
    CARET = "^"
    WILDCARD = ""


VersionLike = Union[str, semver.Version]
_Parts = Tuple[int, int, int, str]


def _version_parts(version: VersionLike) -> _Parts:
    if isinstance(version, str):
        version = semver.Version.parse(version)
    pre = getattr(version, "prerelease", None) or ""
    return int(version.major), int(version.minor), int(version.patch), str(pre)


def _compare_pre(left: str, right: str) -> int:
    """Order pre-release strings; an empty pre-release sorts last."""
    if left == right:
        return 0
    if not left:
        return 1
    if not right:
        return -1
    for a, b in zip(left.split("."), right.split(".")):
        if a == b:
            continue
        a_num, b_num = a.isdigit(), b.isdigit()
        if a_num and b_num:
            return -1 if int(a) < int(b) else 1
        if a_num != b_num:
            return -1 if a_num else 1
        return -1 if a < b else 1
    return (len(left.split(".")) > len(right.split("."))) - (
        len(left.split(".")) < len(right.split("."))
    )


@dataclass(frozen=True)
class Comparator:
    """A single operator and partial version, such as ``>=1.2``."""

    op: Op
    major: int
    minor: Optional[int] = None
    patch: Optional[int] = None
    pre: str = ""

    def _exact(self, v: _Parts) -> bool:
        major, minor, patch, pre = v
        if major != self.major:
            return False
        if self.minor is not None and minor != self.minor:
            return False
        if self.patch is not None and patch != self.patch:
            return False
        return pre == self.pre

    def _greater(self, v: _Parts) -> bool:
        major, minor, patch, pre = v
        if major != self.major:
            return major > self.major
        if self.minor is None:
            return False
        if minor != self.minor:
            return minor > self.minor
        if self.patch is None:
            return False
        if patch != self.patch:
            return patch > self.patch
        return _compare_pre(pre, self.pre) > 0

    def _less(self, v: _Parts) -> bool:
        major, minor, patch, pre = v
        if major != self.major:
            return major < self.major
        if self.minor is None:
            return False
        if minor != self.minor:
            return minor < self.minor
        if self.patch is None:
            return False
        if patch != self.patch:
            return patch < self.patch
        return _compare_pre(pre, self.pre) < 0

    def _tilde(self, v: _Parts) -> bool:
        major, minor, patch, pre = v
        if major != self.major:
            return False
        if self.minor is not None and minor != self.minor:
            return False
        if self.patch is not None and patch != self.patch:
            return patch > self.patch
        return _compare_pre(pre, self.pre) >= 0

    def _caret(self, v: _Parts) -> bool:
        major, minor, patch, pre = v
        if major != self.major:
            return False
        if self.minor is None:
            return True
        if self.patch is None:
            return minor >= self.minor if self.major > 0 else minor == self.minor
        if self.major > 0:
            if minor != self.minor:
                return minor > self.minor
            if patch != self.patch:
                return patch > self.patch
        elif self.minor > 0:
            if minor != self.minor:
                return False
            if patch != self.patch:
                return patch > self.patch
        elif minor != self.minor or patch != self.patch:
            return False
        return _compare_pre(pre, self.pre) >= 0

    def _wildcard(self, v: _Parts) -> bool:
        major, minor, _, _ = v
        if major != self.major:
            return False
        return self.minor is None or minor == self.minor

    def _matches_impl(self, v: _Parts) -> bool:
        if self.op is Op.EXACT:
            return self._exact(v)
        if self.op is Op.GREATER:
            return self._greater(v)
        if self.op is Op.GREATER_EQ:
            return self._exact(v) or self._greater(v)
        if self.op is Op.LESS:
            return self._less(v)
        if self.op is Op.LESS_EQ:
            return self._exact(v) or self._less(v)
        if self.op is Op.TILDE:
            return self._tilde(v)
        if self.op is Op.CARET:
            return self._caret(v)
        return self._wildcard(v)

    def _pre_is_compatible(self, v: _Parts) -> bool:
        major, minor, patch, _ = v
        return (
            self.major == major
            and self.minor == minor
            and self.patch == patch
            and bool(self.pre)
        )

    def matches(self, version: VersionLike) -> bool:
        """Whether ``version`` satisfies this comparator."""
        parts = _version_parts(version)
        return self._matches_impl(parts) and (
            not parts[3] or self._pre_is_compatible(parts)
        )

    def __str__(self) -> str:
        text = f"{self.op.value}{self.major}"
        if self.minor is not None:
            text += f".{self.minor}"
            if self.patch is not None:
                text += f".{self.patch}"
                if self.pre:
                    text += f"-{self.pre}"
            elif self.op is Op.WILDCARD:
                text += ".*"
        elif self.op is Op.WILDCARD:
            text += ".*"
        return text


def _numeric(text: str, position: str) -> int:
    if len(text) > 1 and text.startswith("0"):
        raise ValueError(f"invalid leading zero in {position} version number")
    return int(text)


def _check_identifiers(text: str, what: str) -> None:
    for ident in text.split("."):
        if not ident:
            raise ValueError(f"empty identifier segment in {what}")
        if what == "pre-release identifier" and ident.isdigit() and len(ident) > 1 and ident.startswith("0"):
            raise ValueError(f"invalid leading zero in {what}")


def _parse_comparator(text: str) -> Comparator:
    text = text.strip()
    if not text:
        raise ValueError("unexpected end of input while parsing major version number")
    match = _COMPARATOR_RE.match(text)
    if match is None:
        raise ValueError(f"unexpected character in version requirement `{text}`")

    op_text = match.group("op")
    op = Op(op_text) if op_text is not None else Op.CARET
    default_op = op_text is None

    major = _numeric(match.group("major"), "major")
    minor_text, patch_text = match.group("minor"), match.group("patch")
    pre, build = match.group("pre"), match.group("build")

    minor: Optional[int] = None
    patch: Optional[int] = None
    has_wildcard = False

    if minor_text is not None:
        if minor_text in _WILDCARDS:
            has_wildcard = True
            if default_op:
                op = Op.WILDCARD
        else:
            minor = _numeric(minor_text, "minor")

    if patch_text is not None:
        if patch_text in _WILDCARDS:
            if default_op:
                op = Op.WILDCARD
        elif has_wildcard:
            raise ValueError("unexpected character after wildcard in version req")
        else:
            patch = _numeric(patch_text, "patch")

    if (pre is not None or build is not None) and patch is None:
        raise ValueError(f"unexpected character in version requirement `{text}`")
    if pre is not None:
        _check_identifiers(pre, "pre-release identifier")
    if build is not None:
        _check_identifiers(build, "build metadata")

    return Comparator(op, major, minor, patch, pre or "")


@dataclass(frozen=True)
class VersionReq:
    """A comma separated list of comparators that must all hold."""

    comparators: Tuple[Comparator, ...] = field(default_factory=tuple)

    @classmethod
    def parse(cls, text: str) -> "VersionReq":
        """Parse a requirement such as ``1.2.3``, ``>=1.0, <2`` or ``*``."""
        stripped = text.strip()
        if stripped in _WILDCARDS:
            return cls(())
        parts = stripped.split(",")
        if any(part.strip() in _WILDCARDS for part in parts):
            raise ValueError(
                "wildcard req (*) must be the only comparator in the version req"
            )
        return cls(tuple(_parse_comparator(part) for part in parts))

    @classmethod
    def exact(cls, version: VersionLike) -> "VersionReq":
        """A requirement matching only ``version``."""
        major, minor, patch, pre = _version_parts(version)
        return cls((Comparator(Op.EXACT, major, minor, patch, pre),))

    def matches(self, version: VersionLike) -> bool:
        """Whether ``version`` satisfies every comparator."""
        parts = _version_parts(version)
        if not all(c._matches_impl(parts) for c in self.comparators):
            return False
        if not parts[3]:
            return True
        return any(c._pre_is_compatible(parts) for c in self.comparators)

    def __str__(self) -> str:
        if not self.comparators:
            return "*"
        return ", ".join(str(c) for c in self.comparators)


@dataclass(frozen=True)
class VersionedPackageName:
    """A package name with an optional version requirement, ``name@req``."""

    name: PackageName
    version: Optional[VersionReq] = None

    @classmethod
    def parse(cls, text: str) -> "VersionedPackageName":
        """Parse ``namespace:name`` or ``namespace:name@requirement``."""
        name, sep, version = text.partition("@")
        if not sep:
            return cls(PackageName.parse(text), None)
        package = PackageName.parse(name)
        try:
            requirement = VersionReq.parse(version)
        except ValueError as exc:
            raise ValueError(f"invalid package version `{version}`: {exc}") from exc
        return cls(package, requirement)

    def __str__(self) -> str:
        if self.version is None:
            return str(self.name)
        return f"{self.name}@{self.version}"