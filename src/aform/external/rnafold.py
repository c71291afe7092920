"""Secondary structure prediction with the ViennaRNA command line tools.

``RNAfold`` folds a single ungapped sequence, ``RNAalifold`` folds an
alignment. Both are run synchronously with a bounded timeout.
"""

from __future__ import annotations

import re
import shutil
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass

from aform.core.moltype import GAP_CHARS

RNAFOLD = "RNAfold"
RNAALIFOLD = "RNAalifold"
DEFAULT_TIMEOUT = 30.0

# RNAalifold truncates long identifiers in CLUSTAL input
_MAX_CLUSTAL_ID = 30

_structure_line = re.compile(r"^([.()<>\[\]{},|]+)(?:\s+\(\s*([-+]?\d+(?:\.\d+)?)[^)]*\))?")


class FoldError(Exception): ...


@dataclass(frozen=True)
class FoldResult:
    """a predicted structure with its minimum free energy, if reported"""

    structure: str
    mfe: float | None = None


def tool_available(executable: str = RNAFOLD) -> bool:
    return shutil.which(executable) is not None


def _run(executable: str, stdin: str, timeout: float) -> str:
    try:
        proc = subprocess.run(
            [executable, "--noPS"],
            input=stdin,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as err:
        msg = f"{executable} not found in PATH"
        raise FoldError(msg) from err
    except subprocess.TimeoutExpired as err:
        msg = f"{executable} did not finish within {timeout:g} seconds"
        raise FoldError(msg) from err

    if proc.returncode != 0:
        msg = f"{executable} failed: {proc.stderr.strip() or proc.returncode}"
        raise FoldError(msg)
    return proc.stdout


def parse_fold_output(output: str, from_end: bool = True) -> FoldResult:
    """returns the structure line of RNAfold or RNAalifold output

    Parameters
    ----------
    output
        the tool's stdout
    from_end
        RNAfold reports the structure on the last matching line,
        RNAalifold on the first
    """
    lines = [line.strip() for line in output.splitlines()]
    if from_end:
        lines.reverse()

    for line in lines:
        match = _structure_line.match(line)
        if match is None:
            continue
        mfe = match.group(2)
        return FoldResult(match.group(1), None if mfe is None else float(mfe))

    msg = "could not find a structure in the output"
    raise FoldError(msg)


def fold_sequence(
    sequence: str,
    name: str = "seq",
    timeout: float = DEFAULT_TIMEOUT,
    executable: str = RNAFOLD,
) -> FoldResult:
    """predicts the minimum free energy structure of the residues of sequence

    Notes
    -----
    Gaps and any other non-letter characters are removed before folding,
    so the structure describes the ungapped sequence.
    """
    residues = "".join(c for c in sequence if c.isalpha())
    if not residues:
        msg = f"{name!r} has no residues to fold"
        raise FoldError(msg)
    return parse_fold_output(_run(executable, f">{name}\n{residues}\n", timeout))


def fold_alignment(
    seqs: Iterable[tuple[str, str]],
    timeout: float = DEFAULT_TIMEOUT,
    executable: str = RNAALIFOLD,
) -> FoldResult:
    """predicts the consensus structure of (name, gapped sequence) pairs"""
    seqs = list(seqs)
    if not seqs:
        msg = "no sequences to fold"
        raise FoldError(msg)

    lines = ["CLUSTAL W", ""]
    lines.extend(
        f"{name[:_MAX_CLUSTAL_ID]:<{_MAX_CLUSTAL_ID}} {seq}" for name, seq in seqs
    )
    output = _run(executable, "\n".join(lines) + "\n", timeout)
    return parse_fold_output(output, from_end=False)


def expand_structure(
    structure: str, aligned: str, gap_chars: str = GAP_CHARS, unpaired: str = "."
) -> str:
    """places an ungapped structure onto the columns of aligned

    Notes
    -----
    Gap columns get unpaired, as do residues beyond the end of structure.
    Only letters were folded, other non-gap characters also get unpaired.
    """
    symbols = iter(structure)
    result = []
    for char in aligned:
        if char in gap_chars or not char.isalpha():
            result.append(unpaired)
        else:
            result.append(next(symbols, unpaired))
    return "".join(result)
