from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

import pysam

from .errors import MalformedInputError


class Category(enum.Enum):
    """Outcome assigned to exactly one fragment (read pair)."""

    MAPPED = "Mapped"
    CHIMERIC = "Chimeric"
    AMBIGUOUS_MAPPING = "AmbiguousMapping"
    LOW_BASE_CALL_QUALITY = "LowBaseCallQuality"
    NOVEL_PARTIALLY_MAPPED = "NovelPartiallyMapped"
    NOVEL_FULLY_UNMAPPED = "NovelFullyUnmapped"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    Category.MAPPED: "Mapped uniquely",
    Category.CHIMERIC: "Chimeric (structural variants or PCR artifacts)",
    Category.AMBIGUOUS_MAPPING: "Ambiguous mapping due to repeats",
    Category.LOW_BASE_CALL_QUALITY: "Unmapped due to low base call quality",
    Category.NOVEL_PARTIALLY_MAPPED: "Novel sequences, partially mapped",
    Category.NOVEL_FULLY_UNMAPPED: "Novel sequences, fully unmapped",
}


def _describe(read: pysam.AlignedSegment) -> str:
    return f"{read.query_name} (flag={read.flag})"


def check_record(read: pysam.AlignedSegment) -> None:
    """Raise MalformedInputError unless the record can belong to a pair.

    Records must be paired, primary or supplementary (never secondary),
    not vendor QC-failed and not marked as duplicates. BWA-MEM output
    without post-processing satisfies all of these.
    """
    if not read.is_paired:
        raise MalformedInputError(f"Not paired: {_describe(read)}")
    if read.is_secondary:
        raise MalformedInputError(f"Not primary: {_describe(read)}")
    if read.is_qcfail:
        raise MalformedInputError(f"Vendor quality: {_describe(read)}")
    if read.is_duplicate:
        raise MalformedInputError(f"PCR duplicate: {_describe(read)}")


@dataclass
class PairAlign:
    """All alignment records of one fragment.

    Attributes
    ----------
    name:
        Fragment (read) name shared by every record.
    mate1, mate2:
        The single non-supplementary record of each mate, if seen.
    supplementary_mate1, supplementary_mate2:
        Supplementary (split) alignments of each mate, in stream order.
    """

    name: str
    mate1: Optional[pysam.AlignedSegment] = None
    mate2: Optional[pysam.AlignedSegment] = None
    supplementary_mate1: List[pysam.AlignedSegment] = field(default_factory=list)
    supplementary_mate2: List[pysam.AlignedSegment] = field(default_factory=list)

    def add(self, read: pysam.AlignedSegment) -> None:
        if read.query_name != self.name:
            raise MalformedInputError(
                f"Record {_describe(read)} does not belong to fragment {self.name}"
            )
        check_record(read)

        # BWA reports the parts of a split read as supplementary records
        if read.is_supplementary:
            if read.is_read1:
                self.supplementary_mate1.append(read)
            else:
                self.supplementary_mate2.append(read)
            return

        if read.is_read1:
            if self.mate1 is not None:
                raise MalformedInputError(f"Duplicated mate 1: {_describe(read)}")
            self.mate1 = read
        else:
            if self.mate2 is not None:
                raise MalformedInputError(f"Duplicated mate 2: {_describe(read)}")
            self.mate2 = read

    @property
    def is_complete(self) -> bool:
        return self.mate1 is not None and self.mate2 is not None

    @property
    def has_supplementary(self) -> bool:
        return bool(self.supplementary_mate1) or bool(self.supplementary_mate2)

    def records(self) -> Iterator[pysam.AlignedSegment]:
        for read in (self.mate1, self.mate2):
            if read is not None:
                yield read
        yield from self.supplementary_mate1
        yield from self.supplementary_mate2


@dataclass
class RunningTotals:
    """Per-category pair counts; ``total`` always equals the sum of the counters."""

    total: int = 0
    counts: Dict[Category, int] = field(default_factory=lambda: {c: 0 for c in Category})

    def add(self, category: Category) -> None:
        self.total += 1
        self.counts[category] += 1

    def count(self, category: Category) -> int:
        return self.counts[category]

    def percent(self, category: Category) -> float:
        if self.total == 0:
            return 0.0
        return self.counts[category] * 100.0 / self.total

    def as_dict(self) -> Dict[str, int]:
        out = {"total": self.total}
        for c in Category:
            out[c.value] = self.counts[c]
        return out
