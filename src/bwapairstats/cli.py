from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .classifier import DEFAULT_MIN_MAPQ
from .errors import AlignmentClassificationError
from .fastq import novel_fastq_paths
from .plotting import plot_category_counts
from .report import format_summary, render_report
from .runner import classify_bam, totals_from_summary
from .toy_data import make_toy_data
from .utils import ensure_outdir, open_alignment_file
from .validation import check_min_mapq, check_name_grouped


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    if isinstance(err, AlignmentClassificationError):
        msg = f"Invalid input ({err.__class__.__name__}): {err}"
    else:
        msg = f"{err.__class__.__name__}: {err}"

    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bwapairstats",
        description=(
            "BWAPairStats: classify paired-end BWA-MEM alignments (mapped, chimeric, ambiguous, "
            "low quality, novel) and export fully unmapped pairs as FASTQ."
        ),
    )
    p.add_argument("--version", action="version", version=f"bwapairstats {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny name-grouped BAM covering every category, for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # classify
    # -----------------
    c = sub.add_parser(
        "classify",
        help="Classify every read pair and write novel (fully unmapped) pairs to FASTQ.",
    )
    c.add_argument(
        "--bam",
        required=True,
        type=_path_exists,
        help="Paired-end SAM/BAM straight from BWA-MEM (records grouped by read name).",
    )
    c.add_argument("--outdir", required=True, help="Output directory.")
    c.add_argument(
        "--min-mapq",
        type=int,
        default=DEFAULT_MIN_MAPQ,
        help="Pairs with either mate below this MAPQ are ambiguous (repeats).",
    )
    c.add_argument(
        "--novel-prefix",
        default="novel_sequences",
        help="File prefix for novel FASTQ output (<prefix>_R1.fq.gz / <prefix>_R2.fq.gz).",
    )
    c.add_argument("--no-report", action="store_true", help="Skip report.html and plots.")
    c.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    c.add_argument("--dry-run", action="store_true", help="Validate inputs and print planned outputs.")
    c.add_argument("--resume", action="store_true", help="Skip if outputs already exist.")
    c.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def _write_report(outdir: Path, run: dict) -> Path:
    totals = totals_from_summary(run)
    plots_dir = outdir / "plots"
    plots_dir.mkdir(parents=True, exist_ok=True)
    counts_png = plots_dir / "category_counts.png"
    plot_category_counts(totals=totals, out_png=counts_png)
    return render_report(
        outdir=outdir,
        version=__version__,
        run=run,
        totals=totals,
        plot=str(Path("plots") / counts_png.name),
    )


def cmd_classify(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    log_path = _log_path(outdir, "classify.log")
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("bwapairstats")
    logger.info("bwapairstats %s", __version__)

    try:
        r1_path, r2_path = novel_fastq_paths(outdir, args.novel_prefix)

        if args.dry_run:
            # classify_bam runs the same checks on a real run
            check_min_mapq(int(args.min_mapq))
            with open_alignment_file(args.bam) as bam:
                check_name_grouped(bam.header.to_dict(), args.bam)

            print("Dry-run: inputs look OK.")
            print(f"Min mapping quality: {args.min_mapq}")
            print("Planned outputs:")
            print(f"  novel R1 -> {r1_path}")
            print(f"  novel R2 -> {r2_path}")
            print(f"  summary.json -> {outdir / 'summary.json'}")
            if not args.no_report:
                print(f"  report.html -> {outdir / 'report.html'}")
            return 0

        outdir = ensure_outdir(outdir)

        if args.resume and (outdir / "summary.json").exists():
            logger.info("Resume enabled: summary.json already exists in %s", outdir)
            with open(outdir / "summary.json", encoding="utf-8") as f:
                run = json.load(f)
            print(format_summary(totals_from_summary(run)))
            return 0

        run = classify_bam(
            bam_path=args.bam,
            outdir=outdir,
            min_mapq=int(args.min_mapq),
            novel_prefix=str(args.novel_prefix),
            progress=not bool(args.no_progress),
        )

        if not args.no_report:
            report_path = _write_report(outdir, run)
            logger.info("Report written: %s", report_path)

        print(format_summary(totals_from_summary(run)))
        return 0
    except Exception as e:
        logger.debug("classify failed", exc_info=True)
        return _handle_error(e, log_path=None if args.dry_run else log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "classify":
        return cmd_classify(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
