from pathlib import Path

import numpy as np
import pytest

from tracedecomp.file_io import (
    load_alignment,
    load_basecalls,
    load_reference,
    load_trace,
    write_alignment,
    write_basecalls,
    write_fasta,
    write_trace,
)
from tracedecomp.models import Alignment, BaseCalls, Trace
from tracedecomp.pipeline import read_manifest
from tracedecomp.report import read_decomposition, render_report, write_decomposition


def test_trace_table(tmp_path: Path) -> None:
    signal = np.array([[1, 2, 3], [0, 0, 5], [7.5, 0, 0], [0, 9, 1]], dtype=float)
    path = tmp_path / "s.trace.tsv.gz"
    write_trace(path, Trace(signal=signal))
    trace = load_trace(path)
    assert trace.nsamples == 3
    assert np.array_equal(trace.signal, signal)


def test_trace_unequal_channels(tmp_path: Path) -> None:
    path = tmp_path / "bad.trace.tsv"
    path.write_text("A\tC\tG\tT\n1\t2\t3\t4\n5\t6\t7\n", encoding="utf-8")
    with pytest.raises(ValueError, match="unequal lengths"):
        load_trace(path)


def test_basecalls_table(tmp_path: Path) -> None:
    bc = BaseCalls(consensus="ACGT", primary=list("ACGT"), secondary=list("ARGN"), bcpos=[5, 15, 25, 35])
    path = tmp_path / "s.basecalls.tsv"
    write_basecalls(path, bc)
    assert path.read_text(encoding="utf-8").splitlines()[0] == "bcpos\tconsensus\tprimary\tsecondary"
    loaded = load_basecalls(path)
    assert loaded.consensus == "ACGT"
    assert loaded.secondary == ["A", "R", "G", "N"]
    assert loaded.bcpos == [5, 15, 25, 35]


def test_basecalls_missing_column(tmp_path: Path) -> None:
    path = tmp_path / "bad.tsv"
    path.write_text("bcpos\tprimary\tsecondary\n1\tA\tA\n", encoding="utf-8")
    with pytest.raises(ValueError, match="missing column"):
        load_basecalls(path)


def test_alignment_and_reference(tmp_path: Path) -> None:
    query = "ACGT" * 30 + "A"
    reference = "ACGT" * 20 + "-" + "ACGT" * 10
    path = tmp_path / "s.align.fa"
    write_alignment(path, Alignment(query=query, reference=reference))
    align = load_alignment(path)
    assert align.query == query
    assert align.reference == reference

    ref_path = tmp_path / "s.ref.fa"
    write_fasta(ref_path, [("ref", "acgtacgt")])
    assert load_reference(ref_path).refslice == "ACGTACGT"


def test_alignment_needs_two_records(tmp_path: Path) -> None:
    path = tmp_path / "one.fa"
    write_fasta(path, [("consensus", "ACGT")])
    with pytest.raises(ValueError, match="two records"):
        load_alignment(path)


def test_decomposition_table(tmp_path: Path) -> None:
    table = [(-2, 30), (-1, 0), (0, 31), (1, 29)]
    path = write_decomposition(tmp_path / "s.decomp", table)
    assert path.read_text(encoding="utf-8").startswith("indel\tdecomp\n-2\t30\n")
    assert read_decomposition(path) == table


def test_report_renders(tmp_path: Path) -> None:
    summary = {
        "sample": "s1",
        "breakpoint": {"detector": "signal", "breakpoint": 70, "indelshift": True, "traceleft": True, "best_diff": 0.5},
        "decomposition": {
            "outcome": "deletion",
            "shift": [0, 1],
            "residual": 0,
            "median": 40,
            "mad": 3,
            "threshold": 25,
            "deldecomp": [1],
            "insdecomp": [],
        },
        "outputs": {"decomp": "s1.decomp", "plot": None},
    }
    out = render_report(out_path=tmp_path / "s1.report.html", version="0.1.0", summary=summary, primary="ACGT", secondary="ARGT")
    html = out.read_text(encoding="utf-8")
    assert "deletion" in html
    assert "ARGT" in html
    assert "<img" not in html


def test_manifest_resolves_relative_paths(tmp_path: Path) -> None:
    path = tmp_path / "manifest.tsv"
    path.write_text(
        "sample\tbasecalls\talignment\treference\ttrace\n"
        "a\ta.tsv\ta.fa\tref.fa\ta.trace.tsv\n"
        "b\tb.tsv\tb.fa\t/abs/ref.fa\t\n",
        encoding="utf-8",
    )
    samples = read_manifest(path)
    assert samples[0]["basecalls"] == str(tmp_path / "a.tsv")
    assert samples[0]["trace"] == str(tmp_path / "a.trace.tsv")
    assert samples[1]["reference"] == "/abs/ref.fa"
    assert samples[1]["trace"] is None


def test_manifest_missing_column(tmp_path: Path) -> None:
    path = tmp_path / "manifest.tsv"
    path.write_text("sample\tbasecalls\n", encoding="utf-8")
    with pytest.raises(ValueError, match="missing manifest column"):
        read_manifest(path)
