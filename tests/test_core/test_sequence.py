import pytest

from aform.core.sequence import Sequence, SequenceError


@pytest.fixture
def annotated():
    return Sequence(
        "s1",
        "AC-GU",
        residue_annotations={"SS": "<.-.>"},
        annotations=[("AC", "X1"), ("DR", "a"), ("DR", "b")],
    )


@pytest.mark.parametrize("name", ["", "a b", "a\tb", None, "#x", "//", "//x"])
def test_invalid_name(name):
    with pytest.raises(SequenceError):
        Sequence(name, "ACGU")


def test_residue_annotation_length_checked():
    with pytest.raises(SequenceError):
        Sequence("s1", "ACGU", residue_annotations={"SS": "..."})


def test_annotation_value_padding_checked():
    with pytest.raises(SequenceError):
        Sequence("s1", "ACGU", annotations=[("DE", " padded")])
    seq = Sequence("s1", "ACGU", annotations=[("DE", "inner  space"), ("CC", "")])
    assert seq.annotations == (("DE", "inner  space"), ("CC", ""))


def test_basic_attributes(annotated):
    assert annotated.name == "s1"
    assert str(annotated) == "AC-GU"
    assert len(annotated) == 5
    assert annotated[2] == "-"
    assert "".join(annotated) == "AC-GU"
    assert annotated.annotations == (("AC", "X1"), ("DR", "a"), ("DR", "b"))
    assert dict(annotated.residue_annotations) == {"SS": "<.-.>"}


def test_residue_annotations_read_only(annotated):
    with pytest.raises(TypeError):
        annotated.residue_annotations["SS"] = "....."


def test_equality(annotated):
    same = Sequence(
        "s1",
        "AC-GU",
        residue_annotations={"SS": "<.-.>"},
        annotations=[("AC", "X1"), ("DR", "a"), ("DR", "b")],
    )
    assert same == annotated
    assert hash(same) == hash(annotated)
    assert annotated != annotated.copy(name="s2")


def test_copy_replaces(annotated):
    got = annotated.copy(seq="ACGGU", residue_annotations={"SS": "....."})
    assert got.seq == "ACGGU"
    assert got.annotations == annotated.annotations
    assert annotated.seq == "AC-GU"


def test_map_tracks_same_instance_if_unchanged(annotated):
    assert annotated.map_tracks(lambda text: text) is annotated


def test_permute_moves_annotation(annotated):
    got = annotated.permute([0, 1, 3, 2, 4])
    assert got.seq == "ACG-U"
    assert got.residue_annotations["SS"] == "<..->"


def test_with_residue_annotation(annotated):
    got = annotated.with_residue_annotation("PP", "99999")
    assert dict(got.residue_annotations) == {"SS": "<.-.>", "PP": "99999"}
    got = got.with_residue_annotation("SS", None)
    assert dict(got.residue_annotations) == {"PP": "99999"}
    with pytest.raises(SequenceError):
        annotated.with_residue_annotation("PP", "9")


def test_ungapped(annotated):
    assert annotated.ungapped() == "ACGU"
    assert annotated.residue_count() == 4


def test_same_content_ignores_name(annotated):
    other = annotated.copy(name="s2", annotations=())
    assert annotated.same_content(other)
    assert not annotated.same_content(other.copy(residue_annotations={}))
