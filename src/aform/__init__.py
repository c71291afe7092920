"""aform: a modal editor core for Stockholm format multiple sequence
alignments, with RNA secondary structure awareness."""

import logging
import os
import typing
import warnings
from importlib import import_module

from aform._version import __version__

__copyright__ = "Copyright 2026-date, The aform Project"
__license__ = "BSD-3"


def __getattr__(name: str) -> typing.Any:  # noqa: ANN401
    if (attr := globals().get(name)) is not None:
        return attr

    if name not in _import_mapping:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    module_name = _import_mapping[name]
    module = import_module(f".{module_name}", package=__name__)
    attr = getattr(module, name)
    globals()[name] = attr
    return attr


_import_mapping = {
    "Alignment": "core.alignment",
    "make_alignment": "core.alignment",
    "Sequence": "core.sequence",
    "History": "core.history",
    "load_stockholm": "parse.stockholm",
    "parse_stockholm": "parse.stockholm",
    "write_stockholm": "format.stockholm",
    "alignment_to_stockholm": "format.stockholm",
    "StructureCache": "struct.pairs",
    "EditorSettings": "config",
    "EditorSession": "editor.session",
    "open_": "util.io",
}


def __dir__() -> list[str]:
    return list(_import_mapping.keys()) + list(globals().keys())


__all__ = list(_import_mapping.keys())

version = __version__
version_info = tuple(int(v) for v in version.split(".") if v.isdigit())


warn_env = "AFORM_WARNINGS"

if warn := os.environ.get(warn_env):
    warnings.simplefilter(warn)


# suppress numba warnings
__numba_logger = logging.getLogger("numba")
__numba_logger.setLevel(logging.WARNING)
