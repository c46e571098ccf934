"""FASTQ output for fully unmapped (novel) read pairs.

Aligners store reverse-strand reads reverse-complemented; the original read
is restored before writing so the FASTQ can be re-assembled or re-mapped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import TracebackType
from typing import Optional, TextIO, Type

import pysam

from .errors import InvalidBaseError, MalformedInputError
from .models import PairAlign
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)

RC_BASE_MAP = {"A": "T", "C": "G", "G": "C", "T": "A", "N": "N"}

# Phred 40, used when a record carries no base qualities
FALLBACK_QUAL = "I"


def reverse_complement(seq: str) -> str:
    try:
        return "".join(RC_BASE_MAP[b] for b in reversed(seq))
    except KeyError as e:
        raise InvalidBaseError(f"Cannot complement base {e.args[0]!r} in {seq!r}") from None


def reverse_qualities(qual: str) -> str:
    return qual[::-1]


def fastq_record(read: pysam.AlignedSegment) -> str:
    """Return the four-line FASTQ record for a read in its sequenced orientation.

    Records stored without qualities (`*`, e.g. reads mapped from FASTA) get
    FALLBACK_QUAL for every base.
    """
    seq = read.query_sequence
    if seq is None:
        raise MalformedInputError(
            f"Read {read.query_name} has no stored sequence; cannot write FASTQ"
        )
    quals = read.query_qualities
    if quals is None:
        qual = FALLBACK_QUAL * len(seq)
    else:
        qual = pysam.qualities_to_qualitystring(quals)
    if read.is_reverse:
        seq = reverse_complement(seq)
        qual = reverse_qualities(qual)
    return f"@{read.query_name}\n{seq}\n+\n{qual}\n"


def novel_fastq_paths(outdir: str | Path, prefix: str = "novel_sequences") -> tuple[Path, Path]:
    outdir = Path(outdir)
    return outdir / f"{prefix}_R1.fq.gz", outdir / f"{prefix}_R2.fq.gz"


class NovelSequenceWriter:
    """Paired gzip FASTQ writer; record N of R1 and R2 is always the same fragment.

    Use as a context manager so both streams are flushed and closed on
    every exit path, including errors.
    """

    def __init__(self, r1_path: str | Path, r2_path: str | Path) -> None:
        self.r1_path = Path(r1_path)
        self.r2_path = Path(r2_path)
        self.pairs_written = 0
        self._r1: Optional[TextIO] = None
        self._r2: Optional[TextIO] = None

    def open(self) -> "NovelSequenceWriter":
        self._r1 = open_textmaybe_gzip(self.r1_path, "wt")
        try:
            self._r2 = open_textmaybe_gzip(self.r2_path, "wt")
        except Exception:
            self._r1.close()
            self._r1 = None
            raise
        logger.debug("Writing novel sequences to %s and %s", self.r1_path, self.r2_path)
        return self

    def close(self) -> None:
        try:
            if self._r1 is not None:
                self._r1.close()
        finally:
            self._r1 = None
            if self._r2 is not None:
                self._r2.close()
            self._r2 = None

    def __enter__(self) -> "NovelSequenceWriter":
        return self.open()

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def write_pair(self, pair: PairAlign) -> None:
        if self._r1 is None or self._r2 is None:
            raise RuntimeError("NovelSequenceWriter is not open")
        assert pair.mate1 is not None and pair.mate2 is not None
        # build both records first so a bad mate 2 cannot leave R1 ahead of R2
        rec1 = fastq_record(pair.mate1)
        rec2 = fastq_record(pair.mate2)
        self._r1.write(rec1)
        self._r2.write(rec2)
        self.pairs_written += 1
