from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from myfind import core
from myfind.cli import main
from myfind.listing import format_ls_line


def touch(p: Path, data: bytes = b"") -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(data)


def out_lines(capsys) -> list[str]:
    return [line for line in capsys.readouterr().out.split("\n") if line]


def test_cli_prints_everything_by_default(tmp_path: Path, capsys):
    touch(tmp_path / "a" / "b.txt")

    rc = main([str(tmp_path), "-print"])
    assert rc == 0
    assert sorted(out_lines(capsys)) == sorted(
        [str(tmp_path), str(tmp_path / "a"), str(tmp_path / "a" / "b.txt")]
    )


def test_cli_filters(tmp_path: Path, capsys):
    touch(tmp_path / "a" / "b.txt")
    touch(tmp_path / "a" / "c.log")

    rc = main([str(tmp_path), "-type", "f", "-name", "*.txt"])
    assert rc == 0
    assert out_lines(capsys) == [str(tmp_path / "a" / "b.txt")]

    rc = main([str(tmp_path), "-type", "d", "-path", "*/a"])
    assert rc == 0
    assert out_lines(capsys) == [str(tmp_path / "a")]


def test_cli_user(tmp_path: Path, capsys):
    touch(tmp_path / "f")
    uid = os.lstat(tmp_path / "f").st_uid

    rc = main([str(tmp_path / "f"), "-user", str(uid)])
    assert rc == 0
    assert out_lines(capsys) == [str(tmp_path / "f")]

    rc = main([str(tmp_path / "f"), "-user", str(uid + 1)])
    assert rc == 0
    assert out_lines(capsys) == []


def test_cli_ls(tmp_path: Path, capsys):
    touch(tmp_path / "data.bin", b"x" * 1234)

    rc = main([str(tmp_path), "-type", "f", "-ls"])
    assert rc == 0
    (line,) = out_lines(capsys)
    st = os.lstat(tmp_path / "data.bin")
    assert line.endswith(str(tmp_path / "data.bin"))
    assert stat.filemode(st.st_mode) in line
    assert " 1234 " in line
    assert line.split()[0] == str(st.st_ino)


def test_format_ls_line_symlink(tmp_path: Path):
    link = tmp_path / "link"
    try:
        link.symlink_to("target")
    except OSError:
        pytest.skip("symlink not supported")
    line = format_ls_line(core.Entry.from_path(str(link), os.lstat(link)))
    assert line.endswith(f"{link} -> target")
    assert line.split()[2].startswith("l")


def test_cli_invalid_type(tmp_path: Path, capsys):
    rc = main([str(tmp_path), "-type", "fx"])
    assert rc == 2
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "usage:" in captured.err
    assert "-type" in captured.err


def test_cli_unknown_user(tmp_path: Path, capsys, monkeypatch):
    def getpwnam(name):
        raise KeyError(name)

    monkeypatch.setattr(core.pwd, "getpwnam", getpwnam)
    rc = main([str(tmp_path), "-user", "ghost"])
    assert rc == 2
    assert "ghost" in capsys.readouterr().err


def test_cli_user_and_nouser_conflict(tmp_path: Path):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path), "-user", "0", "-nouser"])
    assert exc.value.code == 2


def test_cli_unknown_argument(tmp_path: Path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path), "-bogus"])
    assert exc.value.code == 2
    assert "usage:" in capsys.readouterr().err


def test_cli_missing_value(tmp_path: Path):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path), "-name"])
    assert exc.value.code == 2


def test_cli_missing_root_still_succeeds(tmp_path: Path, capsys):
    rc = main([str(tmp_path / "missing")])
    assert rc == 0
    captured = capsys.readouterr()
    assert captured.out == ""
    assert str(tmp_path / "missing") in captured.err

    rc = main([str(tmp_path / "missing"), "-q"])
    assert rc == 0
    assert capsys.readouterr().err == ""


def test_cli_debug(tmp_path: Path, capsys):
    touch(tmp_path / "f")
    rc = main([str(tmp_path), "-D", "stat"])
    assert rc == 0
    assert "[DEBUG:stat]" in capsys.readouterr().err

    rc = main(["-D", "help"])
    assert rc == 0
    assert "search" in capsys.readouterr().out

    rc = main([str(tmp_path), "-D", "nonsense"])
    assert rc == 2


def test_cli_undecodable_names(tmp_path: Path, capsysbinary):
    root = os.fsencode(tmp_path)
    os.mkdir(os.path.join(root, b"bad\xffname"))
    touch(tmp_path / "after")

    rc = main([str(tmp_path)])
    assert rc == 0
    lines = capsysbinary.readouterr().out.splitlines()
    assert sorted(lines) == sorted([root, root + b"/bad\xffname", root + b"/after"])


def test_cli_values_starting_with_dash(tmp_path: Path, capsys):
    touch(tmp_path / "-x")
    touch(tmp_path / "y")

    rc = main([str(tmp_path), "-name", "-x"])
    assert rc == 0
    assert out_lines(capsys) == [str(tmp_path / "-x")]

    rc = main([str(tmp_path), "-path", "*/-*", "-type", "f"])
    assert rc == 0
    assert out_lines(capsys) == [str(tmp_path / "-x")]


def test_cli_debug_help_with_other_categories(tmp_path: Path, capsys):
    rc = main([str(tmp_path), "-D", "stat,help"])
    assert rc == 0
    captured = capsys.readouterr()
    assert "Valid arguments for -D" in captured.out
    assert captured.err == ""
