"""Editor settings.

Defaults can be overridden with the AFORM_SETTINGS environment variable,
e.g. ``AFORM_SETTINGS="gap_char=-,history_size=500,collapse=true"``.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from aform.core.history import DEFAULT_HISTORY_SIZE
from aform.core.moltype import DEFAULT_GAP_CHAR, GAP_CHARS
from aform.external.rnafold import DEFAULT_TIMEOUT
from aform.util.misc import get_setting_from_environ, str_to_bool

settings_env = "AFORM_SETTINGS"

COLOR_SCHEMES = {
    "none": "none",
    "off": "none",
    "structure": "structure",
    "ss": "structure",
    "base": "base",
    "nt": "base",
    "conservation": "conservation",
    "cons": "conservation",
    "compensatory": "compensatory",
    "comp": "compensatory",
}


def color_scheme_name(name: str) -> str:
    """the canonical name of a colour scheme or one of its aliases"""
    try:
        return COLOR_SCHEMES[name.strip().lower()]
    except KeyError as err:
        msg = f"unknown color scheme {name!r}"
        raise ValueError(msg) from err


def _gap_char(value: str) -> str:
    value = value.strip()
    if len(value) != 1:
        msg = f"gap_char must be one character, not {value!r}"
        raise ValueError(msg)
    return value


def _positive_int(value: str) -> int:
    num = int(value)
    if num < 1:
        msg = f"{num} is not positive"
        raise ValueError(msg)
    return num


def _positive_float(value: str) -> float:
    num = float(value)
    if num <= 0:
        msg = f"{num} is not positive"
        raise ValueError(msg)
    return num


def _optional_path(value: str) -> str | None:
    return value.strip() or None


_setting_types = {
    "gap_char": _gap_char,
    "gap_chars": str,
    "history_size": _positive_int,
    "collapse": str_to_bool,
    "fold_timeout": _positive_float,
    "log_file": _optional_path,
    "color_scheme": color_scheme_name,
}


@dataclass
class EditorSettings:
    """settings shared by all panes of an editor session

    Attributes
    ----------
    gap_char
        glyph written by gap inserting edits
    gap_chars
        glyphs recognised as gaps, gap_char is always included
    history_size
        maximum number of undo steps per pane
    collapse
        whether identical rows start collapsed
    fold_timeout
        seconds allowed for an RNAfold run
    log_file
        path for the session log, None disables logging
    color_scheme
        name of the colour scheme requested from the renderer
    """

    gap_char: str = DEFAULT_GAP_CHAR
    gap_chars: str = GAP_CHARS
    history_size: int = DEFAULT_HISTORY_SIZE
    collapse: bool = False
    fold_timeout: float = DEFAULT_TIMEOUT
    log_file: str | None = None
    color_scheme: str = "none"

    def __post_init__(self) -> None:
        self.gap_char = _gap_char(self.gap_char)
        self.color_scheme = color_scheme_name(self.color_scheme)
        if self.gap_char not in self.gap_chars:
            self.gap_chars += self.gap_char

    @classmethod
    def from_environ(cls, environ_var: str = settings_env, **kwargs) -> EditorSettings:
        """defaults updated from environ_var, then from kwargs"""
        values = get_setting_from_environ(environ_var, _setting_types)
        values.update(kwargs)
        return cls(**values)

    def replace(self, **kwargs) -> EditorSettings:
        return dataclasses.replace(self, **kwargs)
