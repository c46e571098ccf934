import json
import subprocess
import sys
from pathlib import Path

import pysam

from bwapairstats.toy_data import PAIRED, READ1, READ2, make_read, make_toy_data


def _run_cli(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "bwapairstats"] + args,
        check=False,
        capture_output=True,
        text=True,
    )


def test_make_toy_data_and_classify(tmp_path: Path) -> None:
    toy_dir = tmp_path / "toy"
    cp = _run_cli(["make-toy-data", "--outdir", str(toy_dir)])
    assert cp.returncode == 0

    outdir = tmp_path / "out"
    cp = _run_cli(["classify", "--bam", str(toy_dir / "toy.bam"), "--outdir", str(outdir), "--no-progress"])
    assert cp.returncode == 0, cp.stderr
    assert "Total pairs: 8" in cp.stdout
    assert "Mapped uniquely: 1 (12.50%)" in cp.stdout
    assert "Chimeric (structural variants or PCR artifacts): 2 (25.00%)" in cp.stdout
    assert "Novel sequences, fully unmapped: 1 (12.50%)" in cp.stdout
    assert (outdir / "report.html").exists()
    assert (outdir / "plots" / "category_counts.png").exists()
    assert (outdir / "novel_sequences_R1.fq.gz").exists()
    assert (outdir / "novel_sequences_R2.fq.gz").exists()
    assert (outdir / "logs" / "classify.log").exists()

    summary = json.loads((outdir / "summary.json").read_text(encoding="utf-8"))
    assert summary["counts"]["total"] == 8

    # resume reuses the existing summary
    cp = _run_cli(["classify", "--bam", str(toy_dir / "toy.bam"), "--outdir", str(outdir), "--resume"])
    assert cp.returncode == 0
    assert "Total pairs: 8" in cp.stdout


def test_classify_dry_run_does_not_write_outputs(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    outdir = tmp_path / "classify"
    cp = _run_cli(["classify", "--bam", toy["toy_bam"], "--outdir", str(outdir), "--dry-run", "--min-mapq", "20"])
    assert cp.returncode == 0
    assert "Dry-run" in cp.stdout
    assert "Min mapping quality: 20" in cp.stdout
    assert not (outdir / "summary.json").exists()


def test_negative_min_mapq_is_rejected(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(["classify", "--bam", toy["toy_bam"], "--outdir", str(tmp_path / "out"), "--min-mapq", "-1"])
    assert cp.returncode == 2
    assert "min_mapq" in cp.stderr


def test_malformed_input_message(tmp_path: Path) -> None:
    sam = tmp_path / "dup.sam"
    header = pysam.AlignmentHeader.from_dict({"HD": {"VN": "1.6"}, "SQ": [{"SN": "chr1", "LN": 1000}]})
    with pysam.AlignmentFile(str(sam), "w", header=header) as out:
        out.write(make_read("a", PAIRED | READ1, "ACGT", header=header))
        out.write(make_read("a", PAIRED | READ2 | 0x400, "ACGT", header=header))

    cp = _run_cli(["classify", "--bam", str(sam), "--outdir", str(tmp_path / "out"), "--no-progress"])
    assert cp.returncode == 2
    assert "MalformedInputError" in cp.stderr
    assert "PCR duplicate" in cp.stderr


def test_coordinate_sorted_input_fails_with_and_without_dry_run(tmp_path: Path) -> None:
    bam = tmp_path / "sorted.bam"
    header = pysam.AlignmentHeader.from_dict({"HD": {"VN": "1.6", "SO": "coordinate"}, "SQ": [{"SN": "chr1", "LN": 1000}]})
    with pysam.AlignmentFile(str(bam), "wb", header=header) as out:
        out.write(make_read("a", PAIRED | READ1, "ACGT", header=header))

    for extra in (["--dry-run"], ["--no-progress"]):
        cp = _run_cli(["classify", "--bam", str(bam), "--outdir", str(tmp_path / "out")] + extra)
        assert cp.returncode == 2
        assert "samtools sort -n" in cp.stderr
