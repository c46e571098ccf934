from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt

from .models import Category, RunningTotals

logger = logging.getLogger(__name__)


def plot_category_counts(
    *,
    totals: RunningTotals,
    out_png: str | Path,
    title: str = "Read pair classification",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    labels = [c.value for c in Category]
    values = [totals.count(c) for c in Category]

    plt.figure(figsize=(8, 4.5))
    plt.bar(labels, values)
    plt.ylabel("Read pairs")
    plt.title(f"{title} (n={totals.total})")
    plt.xticks(rotation=25, ha="right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
