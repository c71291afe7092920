"""File access for alignment documents.

Paths ending in a known compression suffix are transparently (de)compressed.
Text read without an explicit encoding has it detected by chardet.
"""

from __future__ import annotations

import os
import shutil
import uuid
from bz2 import open as bzip_open
from collections.abc import Callable, Iterator
from gzip import open as gzip_open
from lzma import open as lzma_open
from pathlib import Path
from tempfile import mkdtemp
from typing import IO, Union

from chardet import detect

from aform.util.misc import _wout_period

PathType = Union[str, os.PathLike]

# number of leading bytes inspected when guessing a text encoding
_SNIFF_SIZE = 100

_compression_handlers: dict[str, Callable[..., IO]] = {
    "gz": gzip_open,
    "bz2": bzip_open,
    "xz": lzma_open,
    "lzma": lzma_open,
}


def get_format_suffixes(filename: PathType) -> tuple[str | None, str | None]:
    """returns the format and compression suffixes of filename

    Examples
    --------
    ``"rfam.sto.gz"`` gives ``("sto", "gz")``, ``"rfam.sto"`` gives
    ``("sto", None)`` and ``"rfam"`` gives ``(None, None)``.
    """
    filename = Path(filename)
    if not filename.suffix:
        return None, None

    suffixes = [_wout_period.sub("", sfx).lower() for sfx in filename.suffixes[-2:]]
    cmp_suffix = suffixes[-1] if suffixes[-1] in _compression_handlers else None
    if cmp_suffix is None:
        return suffixes[-1], None

    fmt_suffix = suffixes[0] if len(suffixes) == 2 else None
    return fmt_suffix, cmp_suffix


def _opener_for(path: Path) -> Callable[..., IO]:
    _, cmp_suffix = get_format_suffixes(path)
    return _compression_handlers.get(cmp_suffix, open)


def detect_encoding(data: bytes, default: str = "utf-8") -> str:
    """returns the encoding chardet considers most likely for data"""
    if not data:
        return default
    return detect(data)["encoding"] or default


def open_(filename: PathType, mode: str = "rt", **kwargs) -> IO:
    """open that handles compression and unknown text encodings

    Parameters
    ----------
    filename
        path to a plain or compressed file
    mode
        standard file opening mode
    kwargs
        passed to the underlying open function

    Returns
    -------
    an object compatible with the file protocol
    """
    if not filename:
        msg = f"{filename!r} not a valid file name"
        raise ValueError(msg)

    mode = mode or "rt"
    path = Path(filename).expanduser()
    opener = _opener_for(path)
    if "b" in mode:
        return opener(path, mode, **kwargs)

    encoding = kwargs.pop("encoding", None)
    if encoding is None and mode.startswith("r"):
        with opener(path, mode="rb") as infile:
            encoding = detect_encoding(infile.read(_SNIFF_SIZE))

    if opener is not open and "t" not in mode:
        # compressed openers default to binary
        mode = f"{mode}t"
    return opener(path, mode, encoding=encoding, **kwargs)


def iter_lines(filename: PathType) -> Iterator[str]:
    """yields the lines of filename without their line terminators"""
    with open_(filename) as infile:
        for line in infile:
            yield line.rstrip("\r\n")


class atomic_write:
    """writes to a temporary file that replaces path only on success

    Used as a context manager. If the block raises, path is left untouched
    and the temporary file is removed.
    """

    def __init__(
        self,
        path: PathType,
        tmpdir: PathType | None = None,
        mode: str = "w",
        encoding: str | None = "utf-8",
    ) -> None:
        self._path = Path(path).expanduser()
        self._mode = mode
        self._encoding = None if "b" in mode else encoding
        self._file: IO | None = None
        self._owns_tmpdir = tmpdir is None
        if tmpdir is None:
            tmpdir = mkdtemp(dir=self._path.parent)
        tmpdir = Path(tmpdir)
        if not tmpdir.exists():
            msg = f"{tmpdir} directory does not exist"
            raise FileNotFoundError(msg)
        self._tmppath = tmpdir / f"{uuid.uuid4()}{''.join(self._path.suffixes)}"
        self.succeeded: bool | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _get_fileobj(self) -> IO:
        if self._file is None:
            kwargs = {} if self._encoding is None else {"encoding": self._encoding}
            self._file = open_(self._tmppath, self._mode, **kwargs)
        return self._file

    def __enter__(self) -> IO:
        return self._get_fileobj()

    def _cleanup(self) -> None:
        if self._owns_tmpdir:
            shutil.rmtree(self._tmppath.parent, ignore_errors=True)
        elif self._tmppath.exists():
            self._tmppath.unlink()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self._get_fileobj().close()
        self.succeeded = exc_type is None
        if self.succeeded:
            self._tmppath.replace(self._path)
        self._cleanup()

    def write(self, text) -> None:
        """writes text to the temporary file"""
        self._get_fileobj().write(text)

    def close(self) -> None:
        """completes the write, replacing path"""
        self.__exit__(None, None, None)
