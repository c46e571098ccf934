from __future__ import annotations

import gzip
import json
import logging
from pathlib import Path
from typing import Any, TextIO

import pysam

logger = logging.getLogger(__name__)


def ensure_outdir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def open_textmaybe_gzip(path: str | Path, mode: str = "rt") -> TextIO:
    p = str(path)
    if p.endswith(".gz"):
        return gzip.open(p, mode)  # type: ignore[return-value]
    return open(p, mode)


def write_json(path: str | Path, obj: Any) -> None:
    with open(path, "wt", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, sort_keys=True)


def open_alignment_file(path: str | Path) -> pysam.AlignmentFile:
    """Open a SAM/BAM/CRAM file for sequential reading.

    ``check_sq=False`` accepts headers without @SQ lines (e.g. all reads unmapped).
    """
    p = str(path)
    mode = "rb" if p.endswith(".bam") else "r"
    return pysam.AlignmentFile(p, mode, check_sq=False)
