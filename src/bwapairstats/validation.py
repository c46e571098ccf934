from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger(__name__)


def check_name_grouped(header: Mapping[str, Any], bam_path: str | Path) -> None:
    """Ensure records of one fragment are adjacent; raise ValueError with fix instructions.

    BWA-MEM output (no @HD SO, or SO:unsorted) and query-name sorted or
    grouped files are accepted. Coordinate-sorted input separates mates.
    """
    hd = header.get("HD", {}) or {}
    sort_order = hd.get("SO", "unknown")
    group_order = hd.get("GO", "none")

    if sort_order == "coordinate":
        raise ValueError(
            "Input is coordinate-sorted, so mates are not adjacent. Run: "
            "samtools sort -n -o namesorted.bam " + str(bam_path)
        )
    if sort_order == "queryname" or group_order == "query":
        return
    logger.info(
        "Input sort order is '%s'; assuming records are grouped by read name "
        "(as written by BWA-MEM).",
        sort_order,
    )


def check_min_mapq(min_mapq: int) -> None:
    if min_mapq < 0:
        raise ValueError(f"min_mapq must be >= 0 (got {min_mapq})")
