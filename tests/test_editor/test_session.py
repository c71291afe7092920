import subprocess

import pytest
from scitrack import CachingLogger

from aform.config import EditorSettings
from aform.core.alignment import SS_CONS, make_alignment
from aform.core.moltype import SeqType
from aform.core.sequence import Sequence
from aform.editor.modes import Action, Mode
from aform.editor.pane import SplitKind
from aform.editor.selection import LinewiseClip
from aform.editor.session import FOLD_TAG, EditorSession
from aform.external import rnafold
from aform.format.stockholm import alignment_to_stockholm
from aform.parse.stockholm import load_stockholm
from aform.struct.pairs import CompensatoryChange


def _session(data, **kwargs):
    settings = EditorSettings(**kwargs)
    return EditorSession(make_alignment(data), settings=settings, logger=False)


@pytest.fixture
def scenario():
    return {"A": "ACGU--", "B": "ACGU--", "C": "ACGG--"}


@pytest.fixture
def fake_run(monkeypatch):
    """replaces subprocess.run, records the calls and returns preset output"""
    calls = []
    outputs = []

    def run(args, input=None, **kwargs):
        calls.append((args, input))
        return subprocess.CompletedProcess(args, 0, stdout=outputs.pop(0), stderr="")

    monkeypatch.setattr(rnafold.subprocess, "run", run)
    return calls, outputs


def test_collapse_cluster_delete(scenario):
    session = _session(scenario, collapse=True)
    assert session.display_rows() == ["A", "C"]
    assert session.cluster_state.count(0) == 2
    result = session.cluster()
    assert result.ok
    assert session.cluster_state.order == [0, 2]
    got = session.delete_sequence()
    assert got.ok
    assert got.value == ["A", "B"]
    assert session.alignment.names == ["C"]
    assert session.pane.num_rows == 1
    assert session.undo().ok
    assert session.alignment.names == ["A", "B", "C"]
    assert session.pane.num_rows == 2


def test_toggle_collapse(scenario):
    session = _session(scenario)
    assert session.pane.num_rows == 3
    result = session.toggle_collapse()
    assert result.value == 1
    assert session.pane.num_rows == 2
    session.toggle_collapse()
    assert session.pane.num_rows == 3


def test_uncluster_restores_order():
    session = _session({"w": "AAAA", "x": "UUUU", "y": "AAAU"})
    session.cluster()
    assert session.display_rows() != ["w", "x", "y"]
    assert len(session.tree_lines()) == 3
    session.uncluster()
    assert session.display_rows() == ["w", "x", "y"]
    assert session.tree_lines() == []


def test_insert_gap_column():
    session = _session({"s1": "AC-", "s2": "AGU", "s3": "AAU"}, gap_char="-")
    session.move_to(0, 2)
    assert session.insert_gap_column().ok
    assert session.alignment.rows() == ["AC--", "AG-U", "AA-U"]
    assert session.modified


def test_delete_gap_column():
    session = _session({"s1": "A-C", "s2": "A.G"})
    session.move_to(0, 0)
    result = session.delete_gap_column()
    assert not result.ok
    assert result.message == "Column contains non-gap characters"
    session.move_to(0, 1)
    assert session.delete_gap_column().ok
    assert session.alignment.rows() == ["AC", "AG"]


def test_shift():
    session = _session({"s1": "A-CG", "s2": "ACGU"}, gap_char="-")
    session.move_to(0, 1)
    result = session.shift("right")
    assert result.ok
    assert session.alignment["s1"].seq == "AC-G"
    assert session.cursor == (0, 2)
    session.move_to(1, 1)
    result = session.shift("right")
    assert not result.ok
    assert result.message == "Cannot shift right (no gap found)"
    assert session.alignment["s2"].seq == "ACGU"
    result = session.shift("left", throw=True)
    assert result.message == "Cannot throw left (no gaps found)"


def test_insert_and_delete_char():
    session = _session({"s1": "A.CG"})
    assert session.insert_char("U").ok
    assert session.alignment["s1"].seq == "UACG"
    assert session.cursor == (0, 1)
    assert session.delete_char().ok
    assert session.alignment["s1"].seq == "UCG."
    assert not session.insert_char("").ok


def test_insert_and_delete_gap():
    session = _session({"s1": "AC.G"})
    assert session.insert_gap().ok
    assert session.alignment["s1"].seq == ".ACG"
    session.move_to(0, 1)
    result = session.delete_gap()
    assert not result.ok
    assert result.message == "Not a gap character"
    session.move_to(0, 0)
    assert session.delete_gap().ok
    assert session.alignment["s1"].seq == "ACG."


def test_undo_redo_messages():
    session = _session({"s1": "AC"})
    assert session.undo().message == "Nothing to undo"
    assert session.redo().message == "Nothing to redo"
    session.insert_gap_column()
    assert session.undo().message == "Undo"
    assert session.alignment["s1"].seq == "AC"
    assert session.redo().message == "Redo"
    assert session.alignment.width == 3
    assert session.status == "Redo"


def test_conversions():
    session = _session({"s1": "acgt"})
    assert session.convert_case().message == "Converted to uppercase"
    assert session.convert_t_u().message == "Converted T to U"
    assert session.alignment["s1"].seq == "ACGU"
    assert session.convert_t_u("T").message == "Converted U to T"
    assert session.convert_case(upper=False).message == "Converted to lowercase"
    assert session.alignment["s1"].seq == "acgt"
    assert session.pane.history.undo_count == 4


def test_trim():
    session = _session({"s1": "--AC-", "s2": "..GU."})
    session.move_to(0, 3)
    result = session.trim()
    assert result.value == 3
    assert session.alignment.rows() == ["AC", "GU"]
    assert session.cursor == (0, 1)
    result = session.trim()
    assert not result.ok
    assert "no gap-only columns" in result.message


def test_visual_line_yank_and_paste(scenario):
    session = _session(scenario)
    result = session.yank()
    assert not result.ok
    session.act(Action.VISUAL_LINE)
    session.move_by(rows=1)
    result = session.yank()
    assert result.ok
    assert result.message == "Yanked 2 sequences"
    assert session.mode is Mode.NORMAL
    assert isinstance(session.peek_clipboard(), LinewiseClip)
    session.move_to(2, 0)
    assert session.paste().ok
    assert session.alignment.names == ["A", "B", "C", "A.1", "B.1"]
    # pasting leaves the clipboard in place
    assert session.peek_clipboard().names == ["A", "B"]


def test_linewise_yank_complete():
    aln = make_alignment(
        [
            Sequence("s1", "AC", residue_annotations={"SS": "<>"}, annotations=[("AC", "X")]),
            Sequence("s2", "GU"),
        ],
        column_annotations={SS_CONS: "<>"},
        file_annotations=[("ID", "demo")],
    )
    session = EditorSession(aln, settings=EditorSettings(), logger=False)
    session.act(Action.VISUAL_LINE)
    clip = session.yank().value
    assert clip.alignment["s1"] == aln["s1"]
    assert clip.alignment.structure == "<>"
    assert clip.alignment.file_annotations == (("ID", "demo"),)


def test_linewise_yank_clustered_rows_paste_into_empty():
    seqs = [
        Sequence(
            name,
            data,
            residue_annotations={"PP": str(i) * 6},
            annotations=[("AC", f"acc_{name}")],
        )
        for i, (name, data) in enumerate(
            [("w", "AAAAAA"), ("x", "UUUUUU"), ("y", "AAAAAU"), ("z", "UUUUUA")]
        )
    ]
    aln = make_alignment(
        seqs,
        column_annotations={SS_CONS: "<....>"},
        file_annotations=[("ID", "demo"), ("DE", "four rows")],
    )
    session = EditorSession(aln, settings=EditorSettings(), logger=False)
    session.cluster()
    expected = session.display_rows()[1:3]
    assert expected != aln.names[1:3]
    session.move_to(1, 0)
    session.act(Action.VISUAL_LINE)
    session.move_by(rows=1)
    clip = session.yank().value
    assert clip.names == expected
    excluded = set(aln.names) - set(expected)
    text = alignment_to_stockholm(clip.alignment)
    for name in excluded:
        assert f"acc_{name}" not in text
        assert f"#=GR {name}" not in text

    other = EditorSession(settings=EditorSettings(), logger=False)
    other.clipboard = session.clipboard
    assert other.paste().ok
    assert alignment_to_stockholm(other.alignment) == alignment_to_stockholm(
        aln.take_seqs(expected)
    )


def test_visual_block_delete_and_paste():
    session = _session({"s1": "ACGU", "s2": "GGCC"})
    session.move_to(0, 1)
    session.act(Action.VISUAL_BLOCK)
    session.move_to(1, 2)
    assert session.yank().message == "Yanked block of 2 x 2"
    session.move_to(0, 2)
    session.paste()
    assert session.alignment.rows() == ["ACCG", "GGGC"]
    session.act(Action.VISUAL_BLOCK)
    assert session.delete_selection().ok
    assert session.alignment["s1"].seq == "AC.G"
    # deleting never fills the clipboard
    assert session.peek_clipboard().grid == ("CG", "GC")


def test_paste_empty_clipboard():
    session = _session({"s1": "AC"})
    result = session.paste()
    assert not result.ok
    assert result.message == "clipboard is empty"


def test_invalid_mode_action():
    session = _session({"s1": "AC"})
    result = session.act(Action.YANK)
    assert not result.ok
    assert "cannot yank" in result.message
    assert session.mode is Mode.NORMAL


def test_search():
    session = _session({"s1": "ACGTACGU", "s2": "..acgu.."})
    result = session.search("acgu")
    assert result.message == "Match 1/3"
    assert session.cursor == (0, 0)
    assert session.search_next().value == (0, 4)
    assert session.search_next().value == (1, 2)
    assert session.search_next().message == "Match 1/3"
    assert session.search_prev().value == (1, 2)
    assert session.is_search_match(1, 5) is True
    assert session.is_search_match(0, 1) is False
    assert session.is_search_match(1, 0) is None


def test_search_from_cursor():
    session = _session({"s1": "ACGUACGU"})
    session.move_to(0, 1)
    assert session.search("ACGU").value == (0, 4)


def test_search_overlapping():
    session = _session({"s1": "AAAA"})
    assert session.search("AA").message == "Match 1/3"


def test_search_not_found():
    session = _session({"s1": "ACGU"})
    result = session.search("GGG")
    assert not result.ok
    assert result.message == "Pattern not found"
    assert session.status == "Pattern not found"
    assert not session.search_next().ok


def test_structure_navigation():
    aln = make_alignment(
        {"s1": "GGAAACCAGAAAC"},
        column_annotations={SS_CONS: "<<...>>.<...>"},
    )
    session = EditorSession(aln, settings=EditorSettings(), logger=False)
    assert session.partner() == 6
    assert session.goto_pair().value == (0, 6)
    session.move_to(0, 2)
    assert not session.goto_pair().ok
    assert session.next_helix().value == (0, 8)
    assert not session.next_helix().ok
    assert session.prev_helix().value == (0, 0)
    assert session.helix(9) is None
    assert session.helix(12) == 1


def test_compensatory():
    aln = make_alignment(
        {"ref": "GAAAC", "q1": "AAAAU", "q2": "GAAAA"},
        column_annotations={SS_CONS: "<...>"},
    )
    session = EditorSession(aln, settings=EditorSettings(), logger=False)
    assert session.compensatory(1, 0) is CompensatoryChange.DOUBLE_COMPATIBLE
    assert session.compensatory(2, 4) is CompensatoryChange.SINGLE_INCOMPATIBLE
    assert session.compensatory(0, 2) is CompensatoryChange.UNPAIRED


def test_seq_type():
    assert _session({"s1": "ACGT"}).seq_type() is SeqType.DNA
    assert _session({"s1": "ACGU"}).seq_type() is SeqType.RNA


def test_fold(fake_run):
    calls, outputs = fake_run
    outputs.append(">s1\nGGGAAACCC\n(((...))) ( -1.20)\n")
    session = _session({"s1": "GG.GAAACCC", "s2": "GGGGAAACCC"})
    result = session.fold()
    assert result.ok
    assert result.message == "Folded s1 (-1.20 kcal/mol)"
    assert calls[0][1] == ">s1\nGGGAAACCC\n"
    assert session.alignment["s1"].residue_annotations[FOLD_TAG] == "((.(...)))"
    assert session.undo().ok
    assert not session.alignment["s1"].residue_annotations


def test_alifold(fake_run):
    calls, outputs = fake_run
    outputs.append("GGG_AAACCC\n(((....))) ( -2.00 = -2.10 +   0.10)\n")
    session = _session({"s1": "GGG.AAACCC", "s2": "GGG~AAACCC"})
    result = session.alifold()
    assert result.ok
    assert session.alignment.structure == "(((....)))"
    assert session.partner(0) == 9
    stdin = calls[0][1]
    assert stdin.startswith("CLUSTAL W")
    assert "GGG-AAACCC" in stdin
    assert "." not in stdin.split("\n", 2)[2]


def test_alifold_length_mismatch(fake_run):
    _, outputs = fake_run
    outputs.append("GGGAAACCC\n(((...))) ( -2.00)\n")
    session = _session({"s1": "GGG.AAACCC"})
    result = session.alifold()
    assert not result.ok
    assert session.alignment.structure is None


def test_fold_missing_tool(monkeypatch):
    def run(*args, **kwargs):
        raise FileNotFoundError("RNAfold")

    monkeypatch.setattr(rnafold.subprocess, "run", run)
    session = _session({"s1": "GGGAAACCC"})
    result = session.fold()
    assert not result.ok
    assert "not found" in result.message
    assert not session.modified


def test_save_and_open(sample_path, tmp_path):
    session = EditorSession.from_file(sample_path, settings=EditorSettings(), logger=False)
    assert session.alignment.names == ["seq1", "seq2", "seq3"]
    session.insert_gap_column()
    assert session.modified
    out = tmp_path / "edited.sto"
    result = session.save(out)
    assert result.ok
    assert not session.modified
    assert session.pane.path == out
    assert load_stockholm(out) == session.alignment
    assert session.open(sample_path).ok
    assert session.alignment.width == 12


def test_save_without_path():
    session = _session({"s1": "AC"})
    result = session.save()
    assert not result.ok
    assert result.message == "No file name"


def test_save_unwritable(tmp_path):
    session = _session({"s1": "AC"})
    result = session.save(tmp_path / "missing" / "out.sto")
    assert not result.ok
    assert not (tmp_path / "missing").exists()


def test_open_missing_file(tmp_path):
    session = _session({"s1": "AC"})
    result = session.open(tmp_path / "none.sto")
    assert not result.ok
    assert session.alignment.names == ["s1"]


def test_open_undecodable_file(tmp_path):
    path = tmp_path / "bad.sto"
    path.write_bytes(
        b"# STOCKHOLM 1.0\n#=GF CC "
        + b"x" * 80
        + b"\nseq1 ACGU\n#=GF DE caf\xff\xfe\n//\n"
    )
    session = _session({"s1": "AC"})
    result = session.open(path)
    assert not result.ok
    assert "invalid text encoding" in result.message
    assert session.status == result.message
    assert session.alignment.names == ["s1"]
    assert session.pane.path is None


def test_split_without_clip_forks():
    session = _session({"s1": "AC"})
    first = session.pane
    session.split(SplitKind.VERTICAL)
    assert session.panes.is_split
    assert session.pane is not first
    session.insert_gap_column()
    assert first.alignment.width == 2
    assert session.switch_pane().value is first


def test_split_with_linewise_clip(scenario):
    session = _session(scenario)
    session.act(Action.VISUAL_LINE)
    session.yank()
    session.split()
    assert session.alignment.names == ["A"]
    assert session.only().ok
    assert not session.panes.is_split
    assert session.alignment.names == ["A"]


def test_execute_quit(tmp_path):
    session = _session({"s1": "AC"})
    session.insert_gap_column()
    result = session.execute("q")
    assert not result.ok
    assert result.message == "No write since last change (use :q! to force)"
    assert not session.should_quit
    assert session.execute("q!").ok
    assert session.should_quit


def test_execute_quit_closes_split():
    session = _session({"s1": "AC"})
    session.execute("vsplit")
    assert session.panes.split_kind is SplitKind.VERTICAL
    session.execute("q")
    assert not session.panes.is_split
    assert not session.should_quit


def test_execute_quit_modified_split():
    session = _session({"s1": "AC"})
    first = session.pane
    session.execute("vsplit")
    session.insert_gap_column()
    result = session.execute("q")
    assert not result.ok
    assert result.message == "No write since last change (use :q! to force)"
    assert session.panes.is_split
    assert session.alignment.width == 3
    assert session.execute("q!").ok
    assert not session.panes.is_split
    assert not session.should_quit
    assert session.pane is first
    assert session.alignment.width == 2


def test_execute_write_quit(tmp_path):
    session = _session({"s1": "AC"})
    path = tmp_path / "out.sto"
    assert session.execute(f"w {path}").ok
    assert path.exists()
    assert session.execute("wq").ok
    assert session.should_quit


@pytest.mark.parametrize(
    "command,rows",
    [
        ("upper", ["ACGT"]),
        ("lower", ["acgt"]),
        ("t2u", ["acgu"]),
        ("u2t", ["acgt"]),
    ],
)
def test_execute_conversions(command, rows):
    session = _session({"s1": "acgt"})
    assert session.execute(command).ok
    assert session.alignment.rows() == rows


def test_execute_settings():
    session = _session({"s1": "A-C"})
    assert session.execute("set gap=-").ok
    assert session.settings.gap_char == "-"
    assert session.alignment.gap_char == "-"
    assert not session.execute("set gap=ab").ok
    assert not session.execute("set colour=red").ok
    assert session.execute("color ss").ok
    assert session.settings.color_scheme == "structure"
    assert not session.execute("color rainbow").ok


def test_execute_goto():
    session = _session({"s1": "ACGUACGU"})
    assert session.execute("goto 3").value == (0, 2)
    assert session.execute("goto 100").value == (0, 7)
    assert not session.execute("goto x").ok


def test_execute_trim():
    session = _session({"s1": "-AC-"})
    assert session.execute("trim left").ok
    assert session.alignment.rows() == ["AC-"]
    assert not session.execute("trim middle").ok


@pytest.mark.parametrize("command", ["bogus", "q now", "w a b"])
def test_execute_unknown(command):
    session = _session({"s1": "AC"})
    result = session.execute(command)
    assert not result.ok
    assert result.message == f"Unknown command: {command}"
    assert session.status == result.message


def test_execute_empty():
    session = _session({"s1": "AC"})
    assert session.execute("   ").ok


def test_settings_applied_to_panes():
    aln = make_alignment({"s1": "AC"})
    session = EditorSession(
        aln, settings=EditorSettings(gap_char="~", history_size=2), logger=False
    )
    assert session.alignment.gap_char == "~"
    for _ in range(4):
        session.insert_gap_column()
    assert session.pane.history.undo_count == 2
    assert session.alignment.rows() == ["~~~~AC"]


def test_empty_session():
    session = EditorSession(settings=EditorSettings(), logger=False)
    assert session.alignment.num_seqs == 0
    assert not session.delete_char().ok
    assert not session.delete_sequence().ok
    assert not session.fold().ok


def test_logging(tmp_path):
    log_path = tmp_path / "logs" / "aform.log"
    settings = EditorSettings(log_file=str(log_path))
    session = EditorSession(make_alignment({"s1": "ACGU"}), settings=settings)
    assert isinstance(session.logger, CachingLogger)
    session.execute("goto 3")
    session.save()
    session.close()
    text = log_path.read_text()
    assert "goto 3" in text
    assert "No file name" in text


def test_user_logger(tmp_path):
    logger = CachingLogger(create_dir=True)
    logger.log_file_path = str(tmp_path / "user.log")
    session = EditorSession(
        make_alignment({"s1": "ACGU"}), settings=EditorSettings(), logger=logger
    )
    assert session.logger is logger
    session.close()
    assert (tmp_path / "user.log").exists()


@pytest.mark.parametrize("logger", [True, "somepath.log"])
def test_invalid_logger(logger):
    with pytest.raises(TypeError):
        EditorSession(settings=EditorSettings(), logger=logger)
