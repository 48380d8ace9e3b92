import pytest

from componentkit.names import (
    Comparator,
    Op,
    PackageName,
    VersionedPackageName,
    VersionReq,
)


def test_package_name_parts():
    name = PackageName.parse("test:bar")
    assert name.namespace == "test"
    assert name.name == "bar"
    assert str(name) == "test:bar"


@pytest.mark.parametrize(
    "text",
    ["foobar", "Foo:bar", "foo-:bar", ":bar", "foo:", "foo:1bar", "foo:bar baz"],
)
def test_package_name_rejects_invalid(text):
    with pytest.raises(ValueError):
        PackageName.parse(text)


def test_package_name_orders_by_full_text():
    texts = ["test:baz", "a-b:c", "a:b", "test:bar"]
    names = sorted(PackageName.parse(t) for t in texts)
    assert [str(n) for n in names] == sorted(texts)


def test_bare_version_displays_as_caret():
    assert str(VersionReq.parse("2.0.0")) == "^2.0.0"


@pytest.mark.parametrize(
    "text",
    ["^1.2.3", "=1.2.3", ">=1.0.0, <2.0.0", "~1.2", "1.*", "*", "^1.2.3-alpha.1"],
)
def test_requirement_display_round_trip(text):
    req = VersionReq.parse(text)
    assert str(req) == text
    assert VersionReq.parse(str(req)) == req


@pytest.mark.parametrize(
    "req, matching, failing",
    [
        ("1.2.3", ["1.2.3", "1.9.0"], ["2.0.0", "1.2.2"]),
        ("0.2.3", ["0.2.3", "0.2.9"], ["0.3.0", "0.2.2"]),
        ("~1.2.3", ["1.2.5"], ["1.3.0", "1.2.2"]),
        (">=1.0.0, <2.0.0", ["1.0.0", "1.99.0"], ["2.0.0", "0.9.0"]),
        ("1.*", ["1.0.0", "1.7.3"], ["2.0.0"]),
        ("*", ["0.0.1", "9.9.9"], ["1.0.0-alpha"]),
        ("=1.2.3", ["1.2.3"], ["1.2.4"]),
        ("1.2.3", [], ["1.3.0-alpha"]),
        ("1.2.3-alpha", ["1.2.3-beta", "1.2.3", "1.4.0"], ["1.2.3-aaa", "1.2.4-beta"]),
    ],
)
def test_requirement_matching(req, matching, failing):
    parsed = VersionReq.parse(req)
    for version in matching:
        assert parsed.matches(version), version
    for version in failing:
        assert not parsed.matches(version), version


def test_exact_requirement_only_matches_its_version():
    req = VersionReq.exact("1.2.3-rc.1")
    assert req.matches("1.2.3-rc.1")
    assert not req.matches("1.2.3")
    assert not req.matches("1.2.3-rc.2")


def test_comparator_pre_release_compatibility():
    comparator = Comparator(Op.CARET, 1, 2, 3, "alpha")
    assert comparator.matches("1.2.3-beta")
    assert not comparator.matches("1.2.4-beta")


@pytest.mark.parametrize(
    "text",
    ["", "a.b", "01.2.3", "1.*.3", "1.0, *", ">=*", "1.2.3-", "1.2.3-01", "1.2-alpha"],
)
def test_requirement_rejects_invalid(text):
    with pytest.raises(ValueError):
        VersionReq.parse(text)


def test_versioned_name_with_version():
    parsed = VersionedPackageName.parse("test:bar@2.0.0")
    assert str(parsed.name) == "test:bar"
    assert str(parsed.version) == "^2.0.0"


def test_versioned_name_without_version():
    parsed = VersionedPackageName.parse("foo:bar")
    assert parsed.name == PackageName.parse("foo:bar")
    assert parsed.version is None


def test_versioned_name_invalid_version():
    with pytest.raises(ValueError, match="invalid package version `nope`"):
        VersionedPackageName.parse("foo:bar@nope")


def test_versioned_name_invalid_name():
    with pytest.raises(ValueError):
        VersionedPackageName.parse("Foo:bar@1.0.0")