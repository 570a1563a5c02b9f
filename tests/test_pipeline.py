from pathlib import Path

import pytest

from tracedecomp.file_io import write_alignment
from tracedecomp.models import Alignment, DecomposeConfig
from tracedecomp.pipeline import run_batch, run_sample
from tracedecomp.toy_data import make_toy_data


def test_run_sample_without_aligned_span_raises(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    bad = tmp_path / "bad.align.fa"
    write_alignment(bad, Alignment(query="ACGT----", reference="----ACGT"))
    with pytest.raises(ValueError, match="no valid alignment span"):
        run_sample(
            basecalls_path=toy["hom_basecalls"],
            alignment_path=bad,
            reference_path=toy["reference"],
            outprefix=tmp_path / "out" / "bad",
            sample="bad",
        )
    assert not (tmp_path / "out" / "bad.decomp").exists()


def test_run_batch_continues_after_failed_sample(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    write_alignment(tmp_path / "toy" / "bad.align.fa", Alignment(query="ACGT----", reference="----ACGT"))
    manifest = Path(toy["manifest"])
    lines = manifest.read_text(encoding="utf-8").splitlines()
    # failing sample first; the ones after it must still run
    lines.insert(1, "toy_bad\ttoy_hom.basecalls.tsv\tbad.align.fa\ttoy.ref.fa\t")
    manifest.write_text("\n".join(lines) + "\n", encoding="utf-8")

    batch = run_batch(
        manifest_path=manifest,
        outdir=tmp_path / "batch",
        config=DecomposeConfig(),
        plot=False,
        report=False,
        progress=False,
    )
    assert batch["counts"] == {"samples_total": 3, "samples_ok": 2, "samples_error": 1}
    assert [s["status"] for s in batch["samples"]] == ["error", "ok", "ok"]
    assert batch["samples"][0]["error"].startswith("ValueError: Sample toy_bad: no valid alignment span")
    assert (tmp_path / "batch" / "batch_summary.json").exists()
