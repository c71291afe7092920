import bz2
import gzip

import pytest

from aform.util.io import (
    atomic_write,
    detect_encoding,
    get_format_suffixes,
    iter_lines,
    open_,
)


@pytest.mark.parametrize(
    "name,expect",
    [
        ("rfam.sto", ("sto", None)),
        ("rfam.sto.gz", ("sto", "gz")),
        ("rfam.STO.BZ2", ("sto", "bz2")),
        ("rfam.gz", (None, "gz")),
        ("dir.v1/rfam", (None, None)),
        ("rfam.stk.xz", ("stk", "xz")),
    ],
)
def test_get_format_suffixes(name, expect):
    assert get_format_suffixes(name) == expect


@pytest.mark.parametrize("suffix,opener", [("gz", gzip.open), ("bz2", bz2.open)])
def test_open_compressed(tmp_path, suffix, opener):
    path = tmp_path / f"demo.sto.{suffix}"
    with open_(path, "w") as out:
        out.write("# STOCKHOLM 1.0\n//\n")
    with opener(path, "rt") as infile:
        assert infile.read().startswith("# STOCKHOLM")
    with open_(path) as infile:
        assert infile.read().splitlines() == ["# STOCKHOLM 1.0", "//"]


def test_open_binary(tmp_path):
    path = tmp_path / "demo.sto"
    path.write_bytes(b"ACGU")
    with open_(path, "rb") as infile:
        assert infile.read() == b"ACGU"


def test_open_latin1(tmp_path):
    path = tmp_path / "latin.sto"
    text = "#=GF AU José Muñoz García\n" * 3
    path.write_bytes(text.encode("latin-1"))
    with open_(path) as infile:
        got = infile.read()
    assert "Jos" in got


@pytest.mark.parametrize("name", ["", None])
def test_open_invalid_name(name):
    with pytest.raises(ValueError):
        open_(name)


def test_detect_encoding():
    assert detect_encoding(b"") == "utf-8"
    assert detect_encoding(b"", default="ascii") == "ascii"
    assert detect_encoding(b"# STOCKHOLM 1.0\n").lower() == "ascii"


def test_iter_lines_strips_terminators(tmp_path):
    path = tmp_path / "dos.sto"
    path.write_bytes(b"# STOCKHOLM 1.0\r\nseq1 ACGU\r\n//\r\n")
    assert list(iter_lines(path)) == ["# STOCKHOLM 1.0", "seq1 ACGU", "//"]


def test_atomic_write(tmp_path):
    path = tmp_path / "out.sto"
    path.write_text("old")
    with atomic_write(path) as out:
        out.write("new")
        assert path.read_text() == "old"
    assert path.read_text() == "new"
    assert [p.name for p in tmp_path.iterdir()] == ["out.sto"]


def test_atomic_write_failure(tmp_path):
    path = tmp_path / "out.sto"
    path.write_text("old")
    writer = atomic_write(path)
    with pytest.raises(RuntimeError):
        with writer as out:
            out.write("partial")
            raise RuntimeError("stop")
    assert writer.succeeded is False
    assert path.read_text() == "old"
    assert [p.name for p in tmp_path.iterdir()] == ["out.sto"]


def test_atomic_write_user_tmpdir(tmp_path):
    tmpdir = tmp_path / "scratch"
    tmpdir.mkdir()
    path = tmp_path / "out.sto.gz"
    writer = atomic_write(path, tmpdir=tmpdir, mode="wt")
    writer.write("ACGU\n")
    writer.close()
    assert writer.succeeded
    assert tmpdir.exists()
    assert list(tmpdir.iterdir()) == []
    with gzip.open(path, "rt") as infile:
        assert infile.read() == "ACGU\n"


def test_atomic_write_missing_tmpdir(tmp_path):
    with pytest.raises(FileNotFoundError):
        atomic_write(tmp_path / "out.sto", tmpdir=tmp_path / "none")
