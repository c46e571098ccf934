from __future__ import annotations

import itertools
import logging
import time
from pathlib import Path
from typing import Dict, Iterable, Optional

import pysam
from tqdm import tqdm

from .classifier import DEFAULT_MIN_MAPQ, classify_pair
from .fastq import NovelSequenceWriter, novel_fastq_paths
from .models import Category, RunningTotals
from .pairing import iter_pairs
from .utils import ensure_outdir, open_alignment_file, write_json
from .validation import check_min_mapq, check_name_grouped

logger = logging.getLogger(__name__)


def classify_alignments(
    reads: Iterable[pysam.AlignedSegment],
    *,
    writer: NovelSequenceWriter,
    min_mapq: int = DEFAULT_MIN_MAPQ,
    totals: Optional[RunningTotals] = None,
    progress: bool = False,
) -> RunningTotals:
    """Assemble, classify and count every pair in a name-grouped record stream.

    Fully unmapped pairs are written to ``writer``, which must already be open.
    Any error aborts the loop; counts gathered so far stay in ``totals``.
    """
    if totals is None:
        totals = RunningTotals()

    pairs = iter_pairs(reads)
    if progress:
        pairs = tqdm(pairs, unit="pair", desc="Classifying pairs")

    for pair in pairs:
        category = classify_pair(pair, min_mapq=min_mapq)
        totals.add(category)
        if category is Category.NOVEL_FULLY_UNMAPPED:
            writer.write_pair(pair)
        logger.debug("%s -> %s", pair.name, category.value)

    return totals


def classify_bam(
    *,
    bam_path: str,
    outdir: str | Path,
    min_mapq: int = DEFAULT_MIN_MAPQ,
    novel_prefix: str = "novel_sequences",
    progress: bool = True,
) -> Dict[str, object]:
    """Main workhorse: classify every pair in a BWA-MEM BAM, write outputs, return summary dict."""
    t0 = time.time()
    check_min_mapq(min_mapq)
    outdir_path = ensure_outdir(outdir)
    r1_path, r2_path = novel_fastq_paths(outdir_path, novel_prefix)

    totals = RunningTotals()
    pairs_written = 0
    fastq_written = False

    with open_alignment_file(bam_path) as bam:
        check_name_grouped(bam.header.to_dict(), bam_path)

        it = bam.fetch(until_eof=True)
        first = next(it, None)
        if first is None:
            logger.warning("No alignment records in %s; nothing to classify.", bam_path)
        else:
            with NovelSequenceWriter(r1_path, r2_path) as writer:
                fastq_written = True
                classify_alignments(
                    itertools.chain([first], it),
                    writer=writer,
                    min_mapq=min_mapq,
                    totals=totals,
                    progress=progress,
                )
                pairs_written = writer.pairs_written

    dt = time.time() - t0
    logger.info("Classified %d pairs in %.1fs", totals.total, dt)

    summary = {
        "bam_path": str(bam_path),
        "min_mapq": int(min_mapq),
        "counts": totals.as_dict(),
        "percentages": {c.value: round(totals.percent(c), 4) for c in Category},
        "novel_fastq_r1": str(r1_path) if fastq_written else None,
        "novel_fastq_r2": str(r2_path) if fastq_written else None,
        "novel_pairs_written": int(pairs_written),
        "runtime_seconds": float(dt),
    }

    write_json(outdir_path / "summary.json", summary)
    return summary


def totals_from_summary(summary: Dict[str, object]) -> RunningTotals:
    """Rebuild RunningTotals from the ``counts`` block of a summary dict."""
    counts = summary["counts"]
    assert isinstance(counts, dict)
    totals = RunningTotals(total=int(counts["total"]))
    for c in Category:
        totals.counts[c] = int(counts.get(c.value, 0))
    return totals
