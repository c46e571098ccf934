import pytest

from bwapairstats.errors import MalformedInputError
from bwapairstats.models import PairAlign
from bwapairstats.pairing import iter_pairs
from bwapairstats.toy_data import (
    DUPLICATE,
    PAIRED,
    QCFAIL,
    READ1,
    READ2,
    SECONDARY,
    SUPPLEMENTARY,
    make_read,
)

SEQ = "ACGTACGTAC" * 3


def test_groups_contiguous_names_in_order():
    reads = [
        make_read("a", PAIRED | READ1, SEQ),
        make_read("a", PAIRED | READ2, SEQ),
        make_read("b", PAIRED | READ2, SEQ),
        make_read("b", PAIRED | READ1 | SUPPLEMENTARY, SEQ[:10], cigar=[(0, 10), (5, 20)]),
        make_read("b", PAIRED | READ1, SEQ),
        make_read("c", PAIRED | READ1, SEQ),
    ]
    pairs = list(iter_pairs(reads))
    assert [p.name for p in pairs] == ["a", "b", "c"]
    assert pairs[0].is_complete
    assert pairs[1].is_complete
    assert len(pairs[1].supplementary_mate1) == 1
    assert pairs[1].supplementary_mate2 == []
    assert len(list(pairs[1].records())) == 3
    assert not pairs[2].is_complete


def test_empty_stream_yields_nothing():
    assert list(iter_pairs([])) == []


def test_supplementary_goes_to_its_own_mate():
    pair = PairAlign(name="a")
    supp = make_read("a", PAIRED | READ2 | SUPPLEMENTARY, SEQ[:10], cigar=[(0, 10), (5, 20)])
    pair.add(supp)
    assert pair.supplementary_mate2 == [supp]
    assert pair.supplementary_mate1 == []
    assert pair.mate2 is None
    assert pair.has_supplementary


@pytest.mark.parametrize("bad_flag", [READ1, PAIRED | READ1 | SECONDARY, PAIRED | READ1 | QCFAIL, PAIRED | READ1 | DUPLICATE])
def test_ineligible_records_are_fatal(bad_flag):
    reads = [make_read("a", PAIRED | READ2, SEQ), make_read("a", bad_flag, SEQ)]
    with pytest.raises(MalformedInputError):
        list(iter_pairs(reads))


def test_duplicated_mate_slot_is_fatal():
    reads = [make_read("a", PAIRED | READ1, SEQ), make_read("a", PAIRED | READ1, SEQ)]
    with pytest.raises(MalformedInputError, match="Duplicated"):
        list(iter_pairs(reads))


def test_pairs_are_yielded_lazily():
    def stream():
        yield make_read("a", PAIRED | READ1, SEQ)
        yield make_read("a", PAIRED | READ2, SEQ)
        yield make_read("b", PAIRED | READ1, SEQ)
        raise AssertionError("read past the first pair")

    it = iter_pairs(stream())
    first = next(it)
    assert first.name == "a"
    with pytest.raises(AssertionError):
        next(it)


def test_add_rejects_other_fragment():
    pair = PairAlign(name="a")
    with pytest.raises(MalformedInputError):
        pair.add(make_read("b", PAIRED | READ1, SEQ))
