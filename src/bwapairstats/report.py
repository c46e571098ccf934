from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict

from jinja2 import Template

from .models import Category, RunningTotals

logger = logging.getLogger(__name__)


def format_summary(totals: RunningTotals) -> str:
    """Plain-text summary: total pairs, then count and percentage per category."""
    lines = [f"Total pairs: {totals.total}"]
    for c in Category:
        lines.append(f"{c.label}: {totals.count(c)} ({totals.percent(c):.2f}%)")
    return "\n".join(lines)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>BWAPairStats Report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    td.num { text-align: right; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>BWAPairStats Report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<table>
  <tr><th>Alignments</th><td><code>{{ bam_path }}</code></td></tr>
  <tr><th>Min mapping quality</th><td>{{ min_mapq }}</td></tr>
  <tr><th>Runtime (s)</th><td>{{ "%.1f"|format(runtime_seconds) }}</td></tr>
</table>

<h2>Read pairs</h2>
<table>
  <tr><th>Category</th><th>Pairs</th><th>%</th></tr>
  {% for row in rows %}
  <tr><td>{{ row.label }}</td><td class="num">{{ row.count }}</td><td class="num">{{ "%.2f"|format(row.percent) }}</td></tr>
  {% endfor %}
  <tr><th>Total pairs</th><th class="num">{{ total }}</th><th></th></tr>
</table>

{% if plot %}
<h2>Plots</h2>
<img src="{{ plot }}" alt="category counts">
{% endif %}

<h2>Outputs</h2>
<ul>
  {% if novel_fastq_r1 %}
  <li><code>{{ novel_fastq_r1 }}</code>, <code>{{ novel_fastq_r2 }}</code> ({{ novel_pairs_written }} fully unmapped pairs)</li>
  {% endif %}
  <li><code>summary.json</code> (machine-readable summary)</li>
</ul>

<h2>Interpretation notes</h2>
<ul>
  <li>Pairs are classified from flags, MAPQ, CIGAR and supplementary records only; XA/SA tags are not inspected.</li>
  <li>Low MAPQ is reported as ambiguous mapping (repeats) even if the pair is also chimeric.</li>
  <li>Novel FASTQ reads are restored to sequencing orientation and can be assembled or re-mapped.</li>
</ul>

<hr>
<p class="small">BWAPairStats {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    outdir: str | Path,
    version: str,
    run: Dict[str, Any],
    totals: RunningTotals,
    plot: str | None = None,
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    rows = [
        {"label": c.label, "count": totals.count(c), "percent": totals.percent(c)}
        for c in Category
    ]

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        bam_path=run.get("bam_path"),
        min_mapq=run.get("min_mapq"),
        runtime_seconds=float(run.get("runtime_seconds", 0.0)),
        rows=rows,
        total=totals.total,
        plot=plot,
        novel_fastq_r1=run.get("novel_fastq_r1"),
        novel_fastq_r2=run.get("novel_fastq_r2"),
        novel_pairs_written=run.get("novel_pairs_written", 0),
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    return out_path
