"""Release helper: bump, verify and publish the crates of a workspace.

* ``bump`` / ``bump-patch`` rewrite crate versions in the tree.
* ``verify`` checks that the crates can be packaged for the registry.
* ``publish`` publishes the crates to the registry.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

# Topologically sorted by dependencies.
CRATES_TO_PUBLISH = (
    "cargo-component-core",
    "wit",
    "cargo-component",
)

# Every crate not listed here must be required with an exact `=a.b.c`
# requirement, so breaking changes to it are allowed even in patch releases.
PUBLIC_CRATES = (
    "cargo-component-core",
    "wit",
    "cargo-component",
)

REGISTRY_API = "https://crates.io/api/v1/crates"
OWNER_TEAM = "github:bytecodealliance:wasmtime-publish"
_OWNER_MARKER = "wasmtime-publish"

_PUBLISH_ATTEMPTS = 10
_RETRY_DELAY = 40

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class Crate:
    """A crate manifest and the fields read from it."""

    manifest: Path
    name: str
    version: str
    publish: bool = True


def _lines(text: str) -> List[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _field_value(line: str, prefix: str) -> str:
    return line.replace(prefix, "").replace('"', "").strip()


def read_crate(manifest: PathLike, workspace_version: Optional[str] = None) -> Crate:
    """Read the name, version and publish flag of a crate manifest."""
    manifest = Path(manifest)
    name: Optional[str] = None
    version: Optional[str] = None
    publish = True
    for line in _lines(manifest.read_text(encoding="utf-8")):
        if name is None and line.startswith('name = "'):
            name = _field_value(line, 'name = "')
        if version is None and line.startswith('version = "'):
            version = _field_value(line, 'version = "')
        if (
            workspace_version is not None
            and version is None
            and (
                line.startswith("version.workspace = true")
                or line.startswith("version = { workspace = true }")
            )
        ):
            version = workspace_version
        if line.startswith("publish = false"):
            publish = False
    if name is None:
        raise ValueError(f"manifest `{manifest}` has no package name")
    if version is None:
        raise ValueError(f"manifest `{manifest}` has no package version")
    return Crate(manifest=manifest, name=name, version=version, publish=publish)


def find_crates(directory: PathLike, workspace_version: Optional[str]) -> List[Crate]:
    """Find every crate manifest below ``directory``, recursively."""
    directory = Path(directory)
    found: List[Crate] = []
    manifest = directory / "Cargo.toml"
    if manifest.exists():
        krate = read_crate(manifest, workspace_version)
        if krate.publish and krate.name not in CRATES_TO_PUBLISH:
            raise RuntimeError(
                f"failed to find {krate.name!r} in whitelist or blacklist"
            )
        found.append(krate)
    for entry in sorted(directory.iterdir()):
        if entry.is_dir():
            found.extend(find_crates(entry, workspace_version))
    return found


def _sort_crates(crates: Iterable[Crate]) -> List[Crate]:
    position = {name: index for index, name in enumerate(CRATES_TO_PUBLISH)}
    # Crates not in the publish list sort first, as an absent key does.
    return sorted(
        crates,
        key=lambda c: (c.name in position, position.get(c.name, 0)),
    )


def bump(version: str, patch_bump: bool) -> str:
    """The next version: a patch bump, or else a semver-major bump."""
    parts = iter(version.split("."))

    def component(what: str) -> int:
        try:
            text = next(parts)
        except StopIteration:
            raise ValueError(f"{what} version missing in `{version}`") from None
        if not text.isdigit():
            raise ValueError(f"invalid {what} version `{text}` in `{version}`")
        return int(text)

    major = component("major")
    minor = component("minor")
    patch = component("patch")

    if patch_bump:
        return f"{major}.{minor}.{patch + 1}"
    if major != 0:
        return f"{major + 1}.0.0"
    if minor != 0:
        return f"0.{minor + 1}.0"
    return f"0.0.{patch + 1}"


def bump_version(krate: Crate, crates: Sequence[Crate], patch: bool = False) -> str:
    """Rewrite the crate's manifest with bumped versions; return the new text."""
    contents = krate.manifest.read_text(encoding="utf-8")

    def next_version(c: Crate) -> str:
        return bump(c.version, patch) if c.name in CRATES_TO_PUBLISH else c.version

    out: List[str] = []
    is_deps = False
    for line in _lines(contents):
        pieces: List[str] = []
        if not is_deps and line.startswith("version =") and krate.name in CRATES_TO_PUBLISH:
            print(f"bump `{krate.name}` {krate.version} => {next_version(krate)}")
            pieces.append(line.replace(krate.version, next_version(krate)))

        if line.startswith("["):
            is_deps = "dependencies" in line

        for other in crates:
            # Unpublished crates keep their versions, so nothing to update.
            if not other.publish:
                continue
            if not is_deps or not line.startswith(f"{other.name} "):
                continue
            if other.version not in line:
                if "version =" not in line or not krate.publish:
                    continue
                raise RuntimeError(
                    f"{str(krate.manifest)!r} has a dep on {other.name} "
                    f"but doesn't list version {other.version}"
                )
            if krate.publish:
                exact = '"=' in line
                if other.name in PUBLIC_CRATES and exact:
                    raise RuntimeError(
                        f"{krate.name} should not have an exact version "
                        f"requirement on {other.name}"
                    )
                if other.name not in PUBLIC_CRATES and not exact:
                    raise RuntimeError(
                        f"{krate.name} should have an exact version "
                        f"requirement on {other.name}"
                    )
            pieces.append(line.replace(other.version, next_version(other)))
            break

        out.append("".join(pieces) if pieces else line)

    text = "".join(f"{line}\n" for line in out)
    krate.manifest.write_text(text, encoding="utf-8")
    return text


def publish(krate: Crate) -> bool:
    """Publish one crate; ``False`` if publishing failed and may be retried."""
    if krate.name not in CRATES_TO_PUBLISH:
        return True

    # Skip crates already published at this version.
    output = subprocess.run(
        ["curl", f"{REGISTRY_API}/{krate.name}"], capture_output=True
    )
    stdout = (output.stdout or b"").decode("utf-8", errors="replace")
    if output.returncode == 0 and f'"newest_version":"{krate.version}"' in stdout:
        print(
            f"skip publish {krate.name} because {krate.version} is latest version"
        )
        return True

    status = subprocess.run(
        ["cargo", "publish", "--no-verify"], cwd=krate.manifest.parent
    )
    if status.returncode != 0:
        print(f"FAIL: failed to publish `{krate.name}`: exit status {status.returncode}")
        return False

    output = subprocess.run(
        ["curl", f"{REGISTRY_API}/{krate.name}/owners"], capture_output=True
    )
    stdout = (output.stdout or b"").decode("utf-8", errors="replace")
    if output.returncode == 0 and _OWNER_MARKER in stdout:
        print(f"{_OWNER_MARKER} already listed as an owner of {krate.name}")
        return True

    status = subprocess.run(["cargo", "owner", "-a", OWNER_TEAM, krate.name])
    if status.returncode != 0:
        raise RuntimeError(
            f"FAIL: failed to add {_OWNER_MARKER} as owner `{krate.name}`: "
            f"exit status {status.returncode}"
        )
    return True


def _verify_and_vendor(krate: Crate) -> None:
    env = dict(os.environ, CARGO_TARGET_DIR="./target")
    status = subprocess.run(
        ["cargo", "package", "--manifest-path", str(krate.manifest)], env=env
    )
    if status.returncode != 0:
        raise RuntimeError(f"failed to verify {str(krate.manifest)!r}")
    archive = f"../target/package/{krate.name}-{krate.version}.crate"
    tar = subprocess.run(["tar", "xf", archive], cwd="./vendor")
    if tar.returncode != 0:
        raise RuntimeError(f"failed to unpack `{archive}`")
    Path(f"./vendor/{krate.name}-{krate.version}/.cargo-checksum.json").write_text(
        '{"files":{}}', encoding="utf-8"
    )


def verify(crates: Sequence[Crate]) -> None:
    """Package every publishable crate against a freshly vendored registry."""
    shutil.rmtree(".cargo", ignore_errors=True)
    shutil.rmtree("vendor", ignore_errors=True)
    vendor = subprocess.run(["cargo", "vendor"], stdout=subprocess.PIPE)
    if vendor.returncode != 0:
        raise RuntimeError("`cargo vendor` failed")

    Path(".cargo").mkdir(parents=True, exist_ok=True)
    Path(".cargo/config.toml").write_bytes(vendor.stdout)

    for krate in crates:
        if krate.publish:
            _verify_and_vendor(krate)


def _publish_all(crates: List[Crate]) -> None:
    pending = list(crates)
    for _ in range(_PUBLISH_ATTEMPTS):
        pending = [krate for krate in pending if not publish(krate)]
        if not pending:
            break
        print(f"{len(pending)} crates failed to publish, waiting for a bit to retry")
        time.sleep(_RETRY_DELAY)
    if pending:
        raise RuntimeError("failed to publish all crates")

    print()
    print("=" * 67)
    print()
    print("Don't forget to push a git tag for this release!")
    print()
    print("    $ git tag vX.Y.Z")
    print("    $ git push origin vX.Y.Z")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the release helper from the workspace root."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        raise SystemExit("must have one argument")
    command = args[0]
    if command not in ("bump", "bump-patch", "publish", "verify"):
        raise SystemExit(f"unknown command: {command}")

    root = read_crate(Path("Cargo.toml"))
    crates = [root]
    crates.extend(find_crates(Path("crates"), root.version))
    crates = _sort_crates(crates)

    if command in ("bump", "bump-patch"):
        for krate in crates:
            bump_version(krate, crates, command == "bump-patch")
        # Update the lock file.
        if subprocess.run(["cargo", "fetch"]).returncode != 0:
            raise RuntimeError("`cargo fetch` failed")
    elif command == "publish":
        _publish_all(crates)
    else:
        verify(crates)
    return 0


if __name__ == "__main__":
    sys.exit(main())