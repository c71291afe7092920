"""Secondary structure base pairs from dot-bracket strings.

Supported notation
------------------
- bracket pairs ``<>``, ``()``, ``[]`` and ``{}``, each matched on its own
  stack so overlapping annotations can use different alphabets
- the WUSS pseudoknot letters, an upper case letter opens and the same
  letter in lower case closes
- any other character is unpaired

A malformed structure never raises. Unmatched columns are reported as
problems and treated as unpaired.
"""

from __future__ import annotations

import enum
import string
from dataclasses import dataclass

from aform.core.moltype import GAP_CHARS, RNA_STANDARD_PAIRS, residues_equal

BRACKETS = {"<": ">", "(": ")", "[": "]", "{": "}"}
BRACKETS.update(zip(string.ascii_uppercase, string.ascii_lowercase))

_CLOSERS = {close: open_ for open_, close in BRACKETS.items()}


@dataclass(frozen=True)
class BasePair:
    left: int
    right: int
    helix: int


@dataclass(frozen=True)
class StructureProblem:
    column: int
    reason: str


def is_opener(char: str) -> bool:
    return char in BRACKETS


def is_closer(char: str) -> bool:
    return char in _CLOSERS


def parse_structure(text: str) -> tuple[list[BasePair], list[StructureProblem]]:
    """returns the base pairs of text, ordered by left column, and any
    problems

    Notes
    -----
    Helix ids number the contiguous runs of opening characters from left to
    right. Each pair takes the id of the run holding its opener. Ids of runs
    without a matched pair are skipped, so the ids are dense.
    """
    stacks: dict[str, list[int]] = {open_: [] for open_ in BRACKETS}
    run_of: dict[int, int] = {}
    found: list[tuple[int, int]] = []
    problems: list[StructureProblem] = []
    run = -1
    prev_open = False
    for col, char in enumerate(text):
        if char in BRACKETS:
            if not prev_open:
                run += 1
            run_of[col] = run
            stacks[char].append(col)
            prev_open = True
            continue

        prev_open = False
        if char in _CLOSERS:
            stack = stacks[_CLOSERS[char]]
            if stack:
                found.append((stack.pop(), col))
            else:
                problems.append(StructureProblem(col, f"unmatched {char!r}"))

    for open_, stack in stacks.items():
        problems.extend(StructureProblem(col, f"unmatched {open_!r}") for col in stack)
    problems.sort(key=lambda p: p.column)

    found.sort()
    dense: dict[int, int] = {}
    pairs = []
    for left, right in found:
        helix = dense.setdefault(run_of[left], len(dense))
        pairs.append(BasePair(left, right, helix))
    return pairs, problems


class StructureCache:
    """constant time partner and helix lookups for one structure string

    Notes
    -----
    ``update`` reparses only when the structure text changes.
    """

    __slots__ = ("_helix", "_helix_starts", "_pairs", "_partner", "_problems", "_text")

    def __init__(self, text: str | None = None) -> None:
        self.clear()
        if text is not None:
            self.update(text)

    def clear(self) -> None:
        self._text: str | None = None
        self._pairs: list[BasePair] = []
        self._problems: list[StructureProblem] = []
        self._partner: list[int | None] = []
        self._helix: list[int | None] = []
        self._helix_starts: list[int] = []

    def update(self, text: str | None) -> bool:
        """parses text unless it is the cached structure, returns whether
        the cache changed"""
        if text == self._text:
            return False
        if text is None:
            self.clear()
            return True

        pairs, problems = parse_structure(text)
        partner: list[int | None] = [None] * len(text)
        helix: list[int | None] = [None] * len(text)
        starts: dict[int, int] = {}
        for pair in pairs:
            partner[pair.left] = pair.right
            partner[pair.right] = pair.left
            helix[pair.left] = helix[pair.right] = pair.helix
            starts.setdefault(pair.helix, pair.left)

        self._text = text
        self._pairs = pairs
        self._problems = problems
        self._partner = partner
        self._helix = helix
        self._helix_starts = sorted(starts.values())
        return True

    def is_valid_for(self, text: str | None) -> bool:
        return text == self._text

    @property
    def structure(self) -> str | None:
        return self._text

    @property
    def pairs(self) -> list[BasePair]:
        return list(self._pairs)

    @property
    def problems(self) -> list[StructureProblem]:
        return list(self._problems)

    @property
    def num_helices(self) -> int:
        return len(self._helix_starts)

    def partner(self, col: int) -> int | None:
        """the column paired with col, None if col is unpaired"""
        if 0 <= col < len(self._partner):
            return self._partner[col]
        return None

    def helix(self, col: int) -> int | None:
        if 0 <= col < len(self._helix):
            return self._helix[col]
        return None

    def is_paired(self, col: int) -> bool:
        return self.partner(col) is not None

    def next_helix(self, col: int) -> int | None:
        """the first column of the nearest helix starting after col"""
        return next((start for start in self._helix_starts if start > col), None)

    def prev_helix(self, col: int) -> int | None:
        """the first column of the nearest helix starting before col"""
        return next(
            (start for start in reversed(self._helix_starts) if start < col), None
        )


def is_canonical_pair(a: str, b: str) -> bool:
    """Watson-Crick or G-U wobble, T is treated as U"""
    key = frozenset((a.upper().replace("T", "U"), b.upper().replace("T", "U")))
    return key in RNA_STANDARD_PAIRS


class CompensatoryChange(enum.Enum):
    UNCHANGED = "unchanged"
    SINGLE_COMPATIBLE = "single compatible"
    DOUBLE_COMPATIBLE = "double compatible"
    SINGLE_INCOMPATIBLE = "single incompatible"
    DOUBLE_INCOMPATIBLE = "double incompatible"
    INVOLVES_GAP = "involves gap"
    UNPAIRED = "unpaired"


def compensatory_change(
    reference: str,
    query: str,
    col: int,
    cache: StructureCache,
    gap_chars: str = GAP_CHARS,
) -> CompensatoryChange:
    """classifies the query base pair at col relative to the reference row

    Parameters
    ----------
    reference, query
        gapped rows of the same alignment
    col
        a column, the partner column comes from cache
    cache
        the structure of the alignment
    gap_chars
        glyphs treated as gaps
    """
    other = cache.partner(col)
    if other is None or max(col, other) >= min(len(reference), len(query)):
        return CompensatoryChange.UNPAIRED

    ref_left, ref_right = reference[col], reference[other]
    left, right = query[col], query[other]
    if any(c in gap_chars for c in (ref_left, ref_right, left, right)):
        return CompensatoryChange.INVOLVES_GAP

    left_changed = not residues_equal(ref_left, left, gap_chars)
    right_changed = not residues_equal(ref_right, right, gap_chars)
    if not (left_changed or right_changed):
        return CompensatoryChange.UNCHANGED

    compatible = is_canonical_pair(left, right)
    if left_changed and right_changed:
        return (
            CompensatoryChange.DOUBLE_COMPATIBLE
            if compatible
            else CompensatoryChange.DOUBLE_INCOMPATIBLE
        )
    return (
        CompensatoryChange.SINGLE_COMPATIBLE
        if compatible
        else CompensatoryChange.SINGLE_INCOMPATIBLE
    )
