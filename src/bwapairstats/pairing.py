from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

import pysam

from .models import PairAlign

logger = logging.getLogger(__name__)


def iter_pairs(reads: Iterable[pysam.AlignedSegment]) -> Iterator[PairAlign]:
    """Group a name-clustered record stream into one PairAlign per fragment.

    Records sharing a query name must be contiguous (BWA-MEM output order,
    or ``samtools sort -n`` / ``samtools collate``). The stream is not sorted
    here, and a name reappearing later in the stream is not detected: it
    starts a new, usually incomplete, pair.

    A pair is yielded as soon as a record with a different name arrives, and
    the last pair at end of stream. Ineligible records raise
    MalformedInputError immediately.
    """
    current: Optional[PairAlign] = None
    for read in reads:
        if current is not None and read.query_name != current.name:
            yield current
            current = None
        if current is None:
            current = PairAlign(name=read.query_name)
        current.add(read)

    if current is not None:
        yield current
