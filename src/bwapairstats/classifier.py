from __future__ import annotations

import logging

import numpy as np
import pysam

from .errors import IncompletePairError, MalformedInputError
from .models import Category, PairAlign

logger = logging.getLogger(__name__)

DEFAULT_MIN_MAPQ = 10

# Phred score below which a base call counts as low quality.
LOW_BASEQ = 20

# Share of the read in insertions or clips that makes a mapped read "novel".
UNMAPPED_FRACTION_LIMIT = 0.2

# pysam CIGAR operation codes
_CIGAR_INS = 1
_CIGAR_SOFT_CLIP = 4
_CIGAR_HARD_CLIP = 5
_UNALIGNED_OPS = (_CIGAR_INS, _CIGAR_SOFT_CLIP, _CIGAR_HARD_CLIP)


def is_low_base_call_quality(read: pysam.AlignedSegment) -> bool:
    """True if more than half of the base qualities are below LOW_BASEQ.

    Records without stored qualities (``*``) are never low quality.
    """
    quals = read.query_qualities
    if quals is None:
        return False
    n = len(quals)
    low = int(np.count_nonzero(np.asarray(quals) < LOW_BASEQ))
    return low > n // 2


def unmapped_fraction(read: pysam.AlignedSegment) -> float:
    """Fraction of the read length in inserted, soft- or hard-clipped CIGAR operations.

    The denominator is the stored sequence length, so hard clips can push
    the value above 1.
    """
    length = read.query_length
    if not length:
        raise MalformedInputError(f"Zero-length read: {read.query_name}")
    n = 0
    for op, op_len in read.cigartuples or ():
        if op in _UNALIGNED_OPS:
            n += op_len
    return n / length


def classify_pair(pair: PairAlign, *, min_mapq: int = DEFAULT_MIN_MAPQ) -> Category:
    """Assign exactly one Category to a complete pair.

    Branches are tested in order and the first match wins:

    1. Either mate unmapped: low base-call quality on either mate, then
       both unmapped (fully novel), otherwise partially mapped.
    2. Both mapped: MAPQ below ``min_mapq`` on either mate, then
       supplementary records (split reads), then a large unaligned
       fraction, then improper pairing or different references.
    """
    r1, r2 = pair.mate1, pair.mate2
    if r1 is None or r2 is None:
        missing = "mate 1" if r1 is None else "mate 2"
        raise IncompletePairError(f"Missing {missing} for fragment {pair.name}")

    if r1.is_unmapped or r2.is_unmapped:
        if is_low_base_call_quality(r1) or is_low_base_call_quality(r2):
            return Category.LOW_BASE_CALL_QUALITY
        if r1.is_unmapped and r2.is_unmapped:
            return Category.NOVEL_FULLY_UNMAPPED
        return Category.NOVEL_PARTIALLY_MAPPED

    # XA/SA tags are not consulted; MAPQ already reflects repeat ambiguity
    if r1.mapping_quality < min_mapq or r2.mapping_quality < min_mapq:
        return Category.AMBIGUOUS_MAPPING
    if pair.has_supplementary:
        return Category.CHIMERIC
    if (
        unmapped_fraction(r1) >= UNMAPPED_FRACTION_LIMIT
        or unmapped_fraction(r2) >= UNMAPPED_FRACTION_LIMIT
    ):
        return Category.NOVEL_PARTIALLY_MAPPED
    if not r1.is_proper_pair or not r2.is_proper_pair or r1.reference_id != r2.reference_id:
        return Category.CHIMERIC
    return Category.MAPPED
