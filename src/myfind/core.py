from __future__ import annotations

import enum
import fnmatch
import os
import pwd
import stat
import sys
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

SEP = "/"


class ConfigurationError(ValueError):
    """Invalid or contradictory filter settings, detected before any walk."""


def eprint(*args: Any, **kwargs: Any) -> None:
    print(*args, file=sys.stderr, **kwargs)


DEBUG_CATEGORIES = ("search", "stat", "all")


@dataclass
class Debug:
    enabled: bool = False
    cats: set[str] = field(default_factory=set)

    def on(self, cat: str) -> bool:
        return self.enabled and ("all" in self.cats or cat in self.cats)

    def log(self, cat: str, msg: str) -> None:
        if self.on(cat):
            eprint(f"[DEBUG:{cat}] {msg}")


class FileType(enum.Enum):
    BLOCK = "b"
    CHAR = "c"
    DIRECTORY = "d"
    FIFO = "p"
    FILE = "f"
    SYMLINK = "l"
    SOCKET = "s"

    @classmethod
    def from_mode(cls, mode: int) -> FileType | None:
        for test, ftype in _MODE_TESTS:
            if test(mode):
                return ftype
        return None


_MODE_TESTS = (
    (stat.S_ISREG, FileType.FILE),
    (stat.S_ISDIR, FileType.DIRECTORY),
    (stat.S_ISLNK, FileType.SYMLINK),
    (stat.S_ISBLK, FileType.BLOCK),
    (stat.S_ISCHR, FileType.CHAR),
    (stat.S_ISFIFO, FileType.FIFO),
    (stat.S_ISSOCK, FileType.SOCKET),
)


@dataclass(frozen=True)
class Entry:
    path: str
    name: str
    stat: os.stat_result

    @classmethod
    def from_path(cls, path: str, st: os.stat_result) -> Entry:
        name = os.path.basename(path.rstrip(SEP)) or path
        return cls(path=path, name=name, stat=st)

    @property
    def type(self) -> FileType | None:
        return FileType.from_mode(self.stat.st_mode)

    @property
    def uid(self) -> int:
        return self.stat.st_uid

    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.stat.st_mode)


@dataclass(frozen=True)
class FilterConfig:
    types: frozenset[FileType] | None = None
    uid: int | None = None
    nouser: bool = False
    name: str | None = None
    path: str | None = None
    extended: bool = False

    def __post_init__(self) -> None:
        if self.uid is not None and self.nouser:
            raise ConfigurationError("-user and -nouser cannot be combined")


def parse_types(expr: str) -> frozenset[FileType]:
    """Turn a ``-type`` argument such as ``fd`` or ``f,l`` into a type set."""
    letters = [ch for ch in expr if ch != ","]
    if not letters:
        raise ConfigurationError("-type requires at least one of bcdpfls")
    types = set()
    for ch in letters:
        try:
            types.add(FileType(ch))
        except ValueError:
            raise ConfigurationError(f"unknown argument to -type: {ch}") from None
    return frozenset(types)


def resolve_user(value: str) -> int:
    """Resolve a ``-user`` argument: numeric IDs first, then account names."""
    if value.isdigit():
        return int(value)
    try:
        return pwd.getpwnam(value).pw_uid
    except KeyError:
        raise ConfigurationError(f"'{value}' is not the name of a known user") from None


def has_owner(uid: int) -> bool:
    try:
        pwd.getpwuid(uid)
    except KeyError:
        return False
    return True


def matches(entry: Entry, config: FilterConfig) -> bool:
    if config.types is not None and entry.type not in config.types:
        return False
    if config.uid is not None and entry.uid != config.uid:
        return False
    if config.nouser and has_owner(entry.uid):
        return False
    if config.name is not None and not fnmatch.fnmatchcase(entry.name, config.name):
        return False
    if config.path is not None and not fnmatch.fnmatchcase(entry.path, config.path):
        return False
    return True


def join_path(parent: str, child: str) -> str:
    """Join two path pieces with exactly one separator at the junction.

    Unlike :func:`os.path.join`, an absolute ``child`` does not discard
    ``parent``, and nothing outside the junction is normalized.
    """
    if not parent:
        return child
    if not child:
        return parent
    trailing = parent.endswith(SEP)
    leading = child.startswith(SEP)
    if trailing and leading:
        return parent[:-1] + child
    if trailing or leading:
        return parent + child
    return parent + SEP + child


def _report(op: str, path: str, err: OSError, quiet: bool) -> None:
    if not quiet:
        eprint(f"myfind: {op} '{path}' failed: {err.strerror} (errno {err.errno})")


def _list_dir(path: str, quiet: bool, debug: Debug) -> list[str] | None:
    try:
        it = os.scandir(path)
    except OSError as e:
        _report("open", path, e, quiet)
        return None

    names: list[str] = []
    try:
        while True:
            try:
                entry = next(it)
            except StopIteration:
                break
            except OSError as e:
                _report("read", path, e, quiet)
                break
            if entry.name in (".", ".."):
                continue
            names.append(entry.name)
    finally:
        try:
            it.close()
        except OSError as e:
            _report("close", path, e, quiet)

    debug.log("search", f"listed {path!r}: {len(names)} entries")
    return names


def walk(
    root: str,
    config: FilterConfig,
    *,
    quiet: bool = False,
    debug: Debug | None = None,
) -> Iterator[Entry]:
    """Walk ``root`` depth-first and yield every entry matching ``config``.

    Symbolic links are classified by their own ``lstat`` and never followed.
    I/O failures are reported on stderr and only skip the affected node;
    nothing is raised for them. A directory's names are read in full and its
    handle closed before any child is visited.
    """
    if debug is None:
        debug = Debug()

    stack = [root]
    while stack:
        path = stack.pop()
        try:
            st = os.lstat(path)
        except OSError as e:
            _report("stat", path, e, quiet)
            continue
        debug.log("stat", f"lstat {path!r}: mode={oct(st.st_mode)}")

        entry = Entry.from_path(path, st)
        if matches(entry, config):
            yield entry

        if not entry.is_dir():
            continue
        names = _list_dir(path, quiet, debug)
        if names is None:
            continue
        stack.extend(join_path(path, name) for name in reversed(names))


def search(
    roots: Sequence[str],
    config: FilterConfig,
    *,
    quiet: bool = False,
    debug: Debug | None = None,
) -> Iterator[Entry]:
    if not roots:
        roots = ["."]

    for root in roots:
        yield from walk(root, config, quiet=quiet, debug=debug)
