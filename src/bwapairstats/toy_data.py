from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pysam

from .utils import ensure_outdir, write_json

# SAM flag bits
PAIRED = 0x1
PROPER_PAIR = 0x2
UNMAPPED = 0x4
MATE_UNMAPPED = 0x8
REVERSE = 0x10
MATE_REVERSE = 0x20
READ1 = 0x40
READ2 = 0x80
SECONDARY = 0x100
QCFAIL = 0x200
DUPLICATE = 0x400
SUPPLEMENTARY = 0x800

TOY_CONTIGS = (("chr1", 1000), ("chr2", 1000))

# Expected category of every toy fragment, keyed by read name.
TOY_EXPECTED = {
    "pair_mapped": "Mapped",
    "pair_split": "Chimeric",
    "pair_discordant": "Chimeric",
    "pair_repeat": "AmbiguousMapping",
    "pair_lowqual": "LowBaseCallQuality",
    "pair_half_unmapped": "NovelPartiallyMapped",
    "pair_clipped": "NovelPartiallyMapped",
    "pair_novel": "NovelFullyUnmapped",
}


def make_read(
    name: str,
    flag: int,
    seq: str,
    *,
    reference_id: int = 0,
    start0: int = 100,
    mapq: int = 60,
    cigar: Optional[Sequence[Tuple[int, int]]] = None,
    qual: Optional[str] = None,
    header: Optional[pysam.AlignmentHeader] = None,
) -> pysam.AlignedSegment:
    """Build one alignment record; unmapped reads get MAPQ 0 and no CIGAR."""
    a = pysam.AlignedSegment(header) if header is not None else pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = seq
    a.flag = flag
    a.reference_id = reference_id
    a.reference_start = start0
    if flag & UNMAPPED:
        a.mapping_quality = 0
    else:
        a.mapping_quality = mapq
        a.cigartuples = list(cigar) if cigar is not None else [(0, len(seq))]
    # qualities must be set after the sequence
    a.query_qualities = pysam.qualitystring_to_array(qual if qual is not None else "I" * len(seq))
    return a


def _toy_reads(header: pysam.AlignmentHeader) -> List[pysam.AlignedSegment]:
    seq = ("ACGTTGCAAC" * 5)[:50]
    r1 = PAIRED | PROPER_PAIR | READ1 | MATE_REVERSE
    r2 = PAIRED | PROPER_PAIR | READ2 | REVERSE
    unmapped_pair1 = PAIRED | UNMAPPED | MATE_UNMAPPED | READ1
    unmapped_pair2 = PAIRED | UNMAPPED | MATE_UNMAPPED | READ2

    def read(name: str, flag: int, **kw) -> pysam.AlignedSegment:
        kw.setdefault("header", header)
        return make_read(name, flag, kw.pop("seq", seq), **kw)

    return [
        read("pair_mapped", r1, start0=100),
        read("pair_mapped", r2, start0=300),
        read("pair_split", r1, start0=100),
        read("pair_split", r2, start0=300),
        read(
            "pair_split",
            PAIRED | READ1 | MATE_REVERSE | SUPPLEMENTARY,
            seq=seq[:25],
            reference_id=1,
            start0=500,
            cigar=[(0, 25), (5, 25)],
        ),
        read("pair_discordant", PAIRED | READ1 | MATE_REVERSE, start0=100),
        read("pair_discordant", PAIRED | READ2 | REVERSE, reference_id=1, start0=300),
        read("pair_repeat", r1, start0=100),
        read("pair_repeat", r2, start0=300, mapq=0),
        read("pair_lowqual", unmapped_pair1, reference_id=-1, start0=-1, qual="#" * 50),
        read("pair_lowqual", unmapped_pair2, reference_id=-1, start0=-1),
        read("pair_half_unmapped", PAIRED | READ1 | MATE_UNMAPPED, start0=100),
        read("pair_half_unmapped", PAIRED | READ2 | UNMAPPED, start0=100),
        read("pair_clipped", r1, start0=100, cigar=[(4, 20), (0, 30)]),
        read("pair_clipped", r2, start0=300),
        read("pair_novel", unmapped_pair1, reference_id=-1, start0=-1),
        read(
            "pair_novel",
            unmapped_pair2 | REVERSE,
            reference_id=-1,
            start0=-1,
            seq="AACG" * 5,
            qual="IIH5" * 5,
        ),
    ]


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny name-grouped BAM with one or more fragments per category.

    The outputs include:
    - toy.bam (records grouped by read name, as written by BWA-MEM)
    - toy_expected.json (expected category for each fragment)

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)

    header = pysam.AlignmentHeader.from_dict(
        {
            "HD": {"VN": "1.6", "SO": "unsorted", "GO": "query"},
            "SQ": [{"SN": name, "LN": length} for name, length in TOY_CONTIGS],
        }
    )

    bam_path = outdir_p / "toy.bam"
    with pysam.AlignmentFile(str(bam_path), "wb", header=header) as bam:
        for r in _toy_reads(header):
            bam.write(r)

    expected_path = outdir_p / "toy_expected.json"
    write_json(expected_path, TOY_EXPECTED)

    summary = {
        "toy_bam": str(bam_path),
        "expected": str(expected_path),
        "outdir": str(outdir_p),
    }
    write_json(outdir_p / "toy_summary.json", summary)
    return summary
