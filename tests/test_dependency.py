from pathlib import Path

import pytest

from componentkit.dependency import (
    DEFAULT_REGISTRY_NAME,
    LocalDependency,
    RegistryError,
    RegistryPackage,
    dependency_to_toml,
    find_url,
    parse_dependency,
)
from componentkit.names import PackageName, VersionReq

URLS = {DEFAULT_REGISTRY_NAME: "http://localhost:8090/", "other": "http://localhost:8091/"}


def test_find_url_uses_default_name():
    assert find_url(None, URLS, None) == URLS[DEFAULT_REGISTRY_NAME]


def test_find_url_named_registry():
    assert find_url("other", URLS, None) == URLS["other"]


def test_find_url_unknown_registry():
    with pytest.raises(
        RegistryError,
        match="component registry `missing` does not exist in the configuration",
    ):
        find_url("missing", URLS, "http://localhost:9000/")


def test_find_url_falls_back_to_default():
    assert find_url(None, {}, "http://localhost:9000/") == "http://localhost:9000/"


def test_find_url_without_default():
    with pytest.raises(RegistryError, match="a default component registry has not been set"):
        find_url(None, {}, None)


def test_registry_package_parse():
    package = RegistryPackage.parse("1.2.3")
    assert package.version == VersionReq.parse("^1.2.3")
    assert package.name is None
    assert package.registry is None


def test_registry_package_invalid():
    with pytest.raises(RegistryError, match="'bogus' is an invalid registry package version"):
        RegistryPackage.parse("bogus")


def test_parse_string_dependency():
    dependency = parse_dependency("1.1.0")
    assert dependency == RegistryPackage(version=VersionReq.parse("1.1.0"))


def test_parse_local_dependency():
    assert parse_dependency({"path": "foo/baz"}) == LocalDependency(Path("foo/baz"))


def test_parse_table_dependency():
    dependency = parse_dependency(
        {"package": "test:bar", "version": "1.0.0", "registry": "other"}
    )
    assert dependency == RegistryPackage(
        version=VersionReq.parse("1.0.0"),
        name=PackageName.parse("test:bar"),
        registry="other",
    )


@pytest.mark.parametrize(
    "entry, message",
    [
        ({"path": "a", "version": "1.0.0"}, "cannot specify both `path` and `version`"),
        ({"path": "a", "registry": "r"}, "cannot specify both `path` and `registry`"),
        ({"path": "a", "package": "a:b"}, "cannot specify both `path` and `package`"),
        ({}, "missing field `package`"),
        ({"registry": "r"}, "missing field `package`"),
        ({"package": "a:b"}, "missing field `version`"),
        ({"path": "a", "extra": 1}, "unknown field `extra`"),
    ],
)
def test_parse_dependency_errors(entry, message):
    with pytest.raises(RegistryError, match=message):
        parse_dependency(entry)


def test_parse_dependency_rejects_other_types():
    with pytest.raises(RegistryError):
        parse_dependency(3)


def test_bare_version_serializes_without_caret():
    assert dependency_to_toml(parse_dependency("1.1.0")) == "1.1.0"


def test_local_dependency_serializes_as_path_table():
    assert dependency_to_toml(LocalDependency(Path("foo/baz"))) == {"path": "foo/baz"}


@pytest.mark.parametrize(
    "value",
    [
        "1.2.3",
        ">=1.0.0, <2.0.0",
        {"path": "foo/qux"},
        {"package": "test:bar", "version": "1.0.0"},
        {"version": "~1.2", "registry": "other"},
        {"package": "test:bar", "version": "1.0.0", "registry": "other"},
    ],
)
def test_dependency_round_trip(value):
    dependency = parse_dependency(value)
    assert parse_dependency(dependency_to_toml(dependency)) == dependency


def test_table_serialization_keeps_field_order():
    dependency = parse_dependency(
        {"registry": "other", "version": "1.0.0", "package": "test:bar"}
    )
    assert list(dependency_to_toml(dependency)) == ["package", "version", "registry"]