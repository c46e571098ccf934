"""BWAPairStats: classify paired-end BWA-MEM alignments and recover novel sequences.

Public API is intentionally small; most users should use the CLI:

    bwapairstats classify --bam aln.bam --outdir results/

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
