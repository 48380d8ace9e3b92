# componentkit

Shared building blocks for tools that build and manage WebAssembly
component projects.

## What it provides

- **Terminal output** (`componentkit.terminal`): `Terminal` prints
  right-justified status lines (`status`, `status_with_color`), notes,
  warnings and errors to stderr, honouring a `Verbosity` (`VERBOSE`,
  `NORMAL`, `QUIET`) and a `Color` choice (`auto`, `always`, `never`,
  parsed with `Color.parse`). Errors are printed even when quiet.
  `Terminal.from_write` sends uncoloured output to any writable text
  object instead.
- **Common command options** (`componentkit.command`):
  `add_common_arguments` adds `-q/--quiet`, `-v/--verbose` (repeatable)
  and `--color WHEN` to an `argparse` parser; `CommonOptions.from_namespace`
  reads them back and `CommonOptions.new_terminal` builds the matching
  `Terminal`.
- **Package names and version requirements** (`componentkit.names`):
  `PackageName` (`namespace:name`, both parts in kebab case), `VersionReq`
  (comma separated comparators such as `1.2.3`, `>=1.0, <2`, `~1.2` or
  `*`; a bare version means `^`), and `VersionedPackageName`, e.g.
  `VersionedPackageName.parse("test:bar@1.2.3")`.
- **Dependency entries** (`componentkit.dependency`): `parse_dependency`
  reads a manifest entry, either a version string or a table with `path`,
  `package`, `version` and `registry`, into a `RegistryPackage` or a
  `LocalDependency`; `dependency_to_toml` turns one back into the value to
  write; `find_url` looks up a registry URL by name, falling back to a
  default for the `default` registry. Invalid entries raise
  `RegistryError`.
- **Lock files** (`componentkit.lock`): `LockFile` parses (`loads`, `read`)
  and renders (`dumps`, `write`) the TOML lock file of format version 1;
  `LockFileResolver.resolve` finds the locked version for a registry,
  package and requirement; `FileLock` opens a file with a shared
  (`open_ro`, `try_open_ro`) or exclusive (`open_rw`, `try_open_rw`)
  advisory lock and works as a context manager. Problems raise
  `LockError`.
- **Release selection** (`componentkit.resolution`): given the `Release`
  entries of a package, `find_latest_release` returns the highest
  non-yanked release matching a requirement, and `select_release` prefers
  a locked version when it is still available, checking its digest against
  the lock file. `resolve_local` turns a local path dependency into a
  `LocalResolution`; `RegistryResolution` records a registry resolution.
- **Release automation** (`componentkit.release`): bump versions across a
  workspace of crates, verify they package, and publish them, by running
  `cargo`, `curl` and `tar`.

## Example

```python
from componentkit.lock import LockFile, LockFileResolver
from componentkit.names import PackageName, VersionReq

with open("Cargo-component.lock") as file:
    lock = LockFile.read(file)

locked = LockFileResolver(lock).resolve(
    "default", PackageName.parse("test:bar"), VersionReq.parse("1.0.0")
)
if locked is not None:
    print(locked.version, locked.digest)
```

## Release helper

Run from the root of a workspace:

```
componentkit-release bump         # major/minor bump of publishable crates
componentkit-release bump-patch   # patch bump
componentkit-release verify       # check every publishable crate packages
componentkit-release publish      # publish, retrying failed crates
```

## What it does not do

- It has no registry client: it does not fetch package logs or download
  package contents. Release selection works on `Release` lists that the
  caller supplies.
- It does not draw progress bars.
- It does not record version or commit information at build time.

## Running the tests

```
pip install -e ".[test]"
pytest
```