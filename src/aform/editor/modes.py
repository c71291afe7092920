"""Editor modes and the transitions between them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ModeError(Exception): ...


@dataclass(frozen=True)
class Capabilities:
    movement: bool = False
    text_entry: bool = False
    range_selection: bool = False


class Mode(Enum):
    NORMAL = "normal"
    INSERT = "insert"
    COMMAND = "command"
    SEARCH = "search"
    BROWSE = "browse"
    VISUAL_BLOCK = "visual block"
    VISUAL_LINE = "visual line"

    @property
    def capabilities(self) -> Capabilities:
        return _CAPABILITIES[self]

    @property
    def label(self) -> str:
        return self.value.upper()

    @property
    def is_visual(self) -> bool:
        return self.capabilities.range_selection


class Action(Enum):
    INSERT = "insert"
    COMMAND = "command"
    SEARCH = "search"
    BROWSE = "browse"
    VISUAL_BLOCK = "visual block"
    VISUAL_LINE = "visual line"
    ESCAPE = "escape"
    SUBMIT = "submit"
    YANK = "yank"
    DELETE = "delete"


_CAPABILITIES = {
    Mode.NORMAL: Capabilities(movement=True),
    Mode.INSERT: Capabilities(movement=True, text_entry=True),
    Mode.COMMAND: Capabilities(text_entry=True),
    Mode.SEARCH: Capabilities(text_entry=True),
    Mode.BROWSE: Capabilities(movement=True),
    Mode.VISUAL_BLOCK: Capabilities(movement=True, range_selection=True),
    Mode.VISUAL_LINE: Capabilities(movement=True, range_selection=True),
}

TRANSITIONS: dict[tuple[Mode, Action], Mode] = {
    (Mode.NORMAL, Action.INSERT): Mode.INSERT,
    (Mode.NORMAL, Action.COMMAND): Mode.COMMAND,
    (Mode.NORMAL, Action.SEARCH): Mode.SEARCH,
    (Mode.NORMAL, Action.BROWSE): Mode.BROWSE,
    (Mode.NORMAL, Action.VISUAL_BLOCK): Mode.VISUAL_BLOCK,
    (Mode.NORMAL, Action.VISUAL_LINE): Mode.VISUAL_LINE,
    (Mode.NORMAL, Action.ESCAPE): Mode.NORMAL,
    (Mode.INSERT, Action.ESCAPE): Mode.NORMAL,
    (Mode.COMMAND, Action.ESCAPE): Mode.NORMAL,
    (Mode.COMMAND, Action.SUBMIT): Mode.NORMAL,
    (Mode.SEARCH, Action.ESCAPE): Mode.NORMAL,
    (Mode.SEARCH, Action.SUBMIT): Mode.NORMAL,
    (Mode.BROWSE, Action.ESCAPE): Mode.NORMAL,
    (Mode.BROWSE, Action.SUBMIT): Mode.NORMAL,
    (Mode.VISUAL_BLOCK, Action.ESCAPE): Mode.NORMAL,
    (Mode.VISUAL_BLOCK, Action.YANK): Mode.NORMAL,
    (Mode.VISUAL_BLOCK, Action.DELETE): Mode.NORMAL,
    (Mode.VISUAL_BLOCK, Action.VISUAL_BLOCK): Mode.NORMAL,
    (Mode.VISUAL_BLOCK, Action.VISUAL_LINE): Mode.VISUAL_LINE,
    (Mode.VISUAL_LINE, Action.ESCAPE): Mode.NORMAL,
    (Mode.VISUAL_LINE, Action.YANK): Mode.NORMAL,
    (Mode.VISUAL_LINE, Action.DELETE): Mode.NORMAL,
    (Mode.VISUAL_LINE, Action.VISUAL_LINE): Mode.NORMAL,
    (Mode.VISUAL_LINE, Action.VISUAL_BLOCK): Mode.VISUAL_BLOCK,
}


def transition(mode: Mode, action: Action) -> Mode:
    """the mode reached by applying action in mode

    Raises
    ------
    ModeError
        if action is not defined in mode
    """
    try:
        return TRANSITIONS[mode, action]
    except KeyError as err:
        msg = f"cannot {action.value} in {mode.value} mode"
        raise ModeError(msg) from err


def allowed_actions(mode: Mode) -> list[Action]:
    return [action for (start, action) in TRANSITIONS if start is mode]
