from __future__ import annotations

import argparse
import contextlib
import os
import sys
from collections.abc import Sequence

from .core import (
    DEBUG_CATEGORIES,
    ConfigurationError,
    Debug,
    FilterConfig,
    parse_types,
    resolve_user,
    search,
)
from .listing import format_entry

VERSION = "myfind 0.1.0"

VALUE_OPTIONS = ("-type", "-user", "-name", "-path", "-D")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="myfind",
        description="Walk directory trees and print the entries matching every given test.",
        allow_abbrev=False,
    )
    p.add_argument("paths", nargs="*", default=["."], help="Root paths to search")

    p.add_argument("-print", action="store_true", help="Print the path of each match (default)")
    p.add_argument("-ls", dest="ls", action="store_true", help="List matches in `ls -dils` format")
    p.add_argument(
        "-type",
        dest="type",
        metavar="[bcdpfls]",
        help="Filter by entry type: b=block, c=char, d=dir, p=pipe, f=file, l=symlink, s=socket",
    )

    owner_group = p.add_mutually_exclusive_group()
    owner_group.add_argument("-user", dest="user", help="Owned by this user name or numeric ID")
    owner_group.add_argument(
        "-nouser", action="store_true", help="Owner ID does not belong to a known user"
    )

    p.add_argument("-name", dest="name", help="Glob pattern to match base names")
    p.add_argument("-path", dest="path", help="Glob pattern to match whole paths")
    p.add_argument("-q", "--quiet", action="store_true", help="Suppress error messages")
    p.add_argument(
        "-D",
        dest="debug",
        metavar="debugopts",
        help="Trace the walk on stderr; comma separated: " + ", ".join(DEBUG_CATEGORIES),
    )
    p.add_argument("--version", action="version", version=VERSION)
    return p


def build_config(ns: argparse.Namespace) -> FilterConfig:
    return FilterConfig(
        types=parse_types(ns.type) if ns.type is not None else None,
        uid=resolve_user(ns.user) if ns.user is not None else None,
        nouser=ns.nouser,
        name=ns.name,
        path=ns.path,
        extended=ns.ls,
    )


def build_debug(value: str | None) -> Debug:
    if value is None:
        return Debug()
    cats = {v.strip() for v in value.split(",") if v.strip()}
    unknown = cats - set(DEBUG_CATEGORIES) - {"help"}
    if unknown:
        raise ConfigurationError(f"unknown debug option: {', '.join(sorted(unknown))}")
    return Debug(enabled=True, cats=cats)


def attach_values(argv: Sequence[str]) -> list[str]:
    """Glue each value-taking option to its value (``-name=-x``).

    argparse would otherwise read a value such as ``-x`` as another option.
    A trailing option with no value is left alone so argparse reports it.
    """
    out: list[str] = []
    i = 0
    while i < len(argv):
        a = argv[i]
        if a in VALUE_OPTIONS and i + 1 < len(argv):
            out.append(f"{a}={argv[i + 1]}")
            i += 2
            continue
        out.append(a)
        i += 1
    return out


def main(argv: Sequence[str] | None = None) -> int:
    p = build_parser()
    ns = p.parse_args(attach_values(sys.argv[1:] if argv is None else argv))

    try:
        debug = build_debug(ns.debug)
        if "help" in debug.cats:
            print("Valid arguments for -D:\n" + ", ".join(DEBUG_CATEGORIES + ("help",)))
            return 0
        config = build_config(ns)
    except ConfigurationError as e:
        p.print_usage(sys.stderr)
        print(f"myfind: {e}", file=sys.stderr)
        return 2

    # Names that are not valid UTF-8 carry surrogate escapes; write raw bytes.
    sys.stdout.flush()
    out = sys.stdout.buffer
    try:
        for entry in search(ns.paths, config, quiet=ns.quiet, debug=debug):
            out.write(os.fsencode(format_entry(entry, config.extended)) + b"\n")
        out.flush()
    except BrokenPipeError:
        with contextlib.suppress(Exception):
            sys.stdout.close()
        return 0
    except KeyboardInterrupt:
        return 130

    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
