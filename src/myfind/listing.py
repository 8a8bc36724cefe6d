from __future__ import annotations

import grp
import os
import pwd
import stat
import time
from contextlib import suppress

from .core import Entry, FileType


def user_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


def group_name(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


def format_ls_line(entry: Entry) -> str:
    """Render ``entry`` the way ``find -ls`` does.

    Columns: inode, size in 1K blocks, mode string, link count, owner, group,
    size in bytes, modification time, path. Symbolic links also show their
    target after ``->``.
    """
    st = entry.stat
    blocks = (getattr(st, "st_blocks", 0) + 1) // 2
    perms = stat.filemode(st.st_mode)
    mtime = time.localtime(st.st_mtime)
    month = time.strftime("%b", mtime)
    hhmm = time.strftime("%H:%M", mtime)
    line = (
        f"{st.st_ino:9d} {blocks:6d} {perms} {st.st_nlink:3d} "
        f"{user_name(st.st_uid):<8} {group_name(st.st_gid):<8} "
        f"{st.st_size:8d} {month} {mtime.tm_mday:2d} {hhmm} {entry.path}"
    )
    if entry.type is FileType.SYMLINK:
        with suppress(OSError):
            line += f" -> {os.readlink(entry.path)}"
    return line


def format_entry(entry: Entry, extended: bool) -> str:
    return format_ls_line(entry) if extended else entry.path
