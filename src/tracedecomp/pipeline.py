"""Per-sample decomposition run and a manifest-driven batch runner.

Each sample gets its own base calls, alignment and reference, so samples are fully
independent of each other.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from . import __version__
from .breakpoint import find_breakpoint, find_homozygous_breakpoint
from .decompose import decompose_alleles
from .file_io import load_alignment, load_basecalls, load_reference, load_trace, write_basecalls
from .models import DecomposeConfig
from .plotting import plot_decomposition
from .profile import create_profile
from .report import render_report, write_decomposition
from .utils import ensure_outdir, with_suffix, write_json
from .validation import check_alignment_matches_basecalls, check_basecalls

logger = logging.getLogger(__name__)

MANIFEST_COLUMNS = ("sample", "basecalls", "alignment", "reference")


def planned_outputs(outprefix: str | Path, *, plot: bool = True, report: bool = True) -> Dict[str, Optional[str]]:
    return {
        "decomp": str(with_suffix(outprefix, ".decomp")),
        "basecalls": str(with_suffix(outprefix, ".basecalls.tsv")),
        "summary": str(with_suffix(outprefix, ".json")),
        "plot": str(with_suffix(outprefix, ".decomp.png")) if plot else None,
        "report": str(with_suffix(outprefix, ".report.html")) if report else None,
    }


def run_sample(
    *,
    basecalls_path: str | Path,
    alignment_path: str | Path,
    reference_path: str | Path,
    outprefix: str | Path,
    trace_path: Optional[str | Path] = None,
    config: DecomposeConfig = DecomposeConfig(),
    sample: Optional[str] = None,
    plot: bool = True,
    report: bool = True,
) -> Dict[str, Any]:
    """Detect the breakpoint, decompose the alleles and write all outputs of one sample.

    With a trace table the breakpoint comes from the signal profile; without one the
    consensus is assumed homozygous and the breakpoint comes from the alignment.
    """
    t0 = time.time()
    config.validate()
    sample = sample or Path(str(outprefix)).name
    ensure_outdir(Path(str(outprefix)).parent)

    bc = load_basecalls(basecalls_path)
    align = load_alignment(alignment_path)
    rs = load_reference(reference_path)
    check_alignment_matches_basecalls(align, bc, config.trim_left, config.trim_right)

    if trace_path is not None:
        trace = load_trace(trace_path)
        check_basecalls(bc, trace)
        prof = create_profile(trace, bc, config.trim_left, config.trim_right)
        bp = find_breakpoint(prof, config)
        detector = "signal"
    else:
        found = find_homozygous_breakpoint(align, config)
        if found is None:
            raise ValueError(
                f"Sample {sample}: no valid alignment span between consensus and reference; "
                "check the alignment FASTA."
            )
        bp = found
        detector = "alignment"

    if not bp.indelshift:
        logger.info("Sample %s: no indel shift detected; decomposing from position %d.", sample, bp.breakpoint)

    dec = decompose_alleles(config, align, bc, bp, rs)

    outputs = planned_outputs(outprefix, plot=plot, report=report)
    write_decomposition(outputs["decomp"], dec.table)
    write_basecalls(outputs["basecalls"], bc)

    if plot:
        plot_decomposition(table=dec.table, out_png=outputs["plot"], threshold=dec.threshold, shift=dec.shift)

    summary: Dict[str, Any] = {
        "sample": sample,
        "version": __version__,
        "inputs": {
            "basecalls": str(basecalls_path),
            "alignment": str(alignment_path),
            "reference": str(reference_path),
            "trace": str(trace_path) if trace_path is not None else None,
        },
        "config": asdict(config),
        "breakpoint": dict(asdict(bp), detector=detector),
        "decomposition": {
            "outcome": dec.outcome,
            "shift": list(dec.shift) if dec.shift is not None else None,
            "residual": dec.residual,
            "median": dec.median,
            "mad": dec.mad,
            "threshold": dec.threshold,
            "deldecomp": dec.deldecomp,
            "insdecomp": dec.insdecomp,
            "align_index": dec.align_index,
            "var_index": dec.var_index,
        },
        "outputs": outputs,
        "runtime_seconds": 0.0,
    }

    if report:
        plot_rel = Path(outputs["plot"]).name if plot else None
        render_report(
            out_path=outputs["report"],
            version=__version__,
            summary=summary,
            primary=bc.primary_seq,
            secondary=bc.secondary_seq,
            plot=plot_rel,
        )

    summary["runtime_seconds"] = float(time.time() - t0)
    write_json(outputs["summary"], summary)
    return summary


def read_manifest(path: str | Path) -> List[Dict[str, Optional[str]]]:
    """Read a sample manifest; relative paths are resolved against its directory."""
    path = Path(path)
    base = path.parent
    lines = [ln.rstrip("\n") for ln in path.read_text(encoding="utf-8").splitlines() if ln.strip()]
    if not lines:
        raise ValueError(f"{path}: manifest is empty.")
    header = lines[0].split("\t")
    missing = [c for c in MANIFEST_COLUMNS if c not in header]
    if missing:
        raise ValueError(
            f"{path}: missing manifest column(s) {missing}; expected "
            + "\t".join(MANIFEST_COLUMNS)
            + "\t[trace]"
        )

    def _resolve(value: str) -> str:
        p = Path(value).expanduser()
        return str(p if p.is_absolute() else base / p)

    samples: List[Dict[str, Optional[str]]] = []
    for lineno, line in enumerate(lines[1:], start=2):
        fields = line.split("\t")
        row = dict(zip(header, fields))
        if any(not row.get(c) for c in MANIFEST_COLUMNS):
            raise ValueError(f"{path}:{lineno}: incomplete manifest row.")
        entry: Dict[str, Optional[str]] = {"sample": row["sample"]}
        for c in MANIFEST_COLUMNS[1:]:
            entry[c] = _resolve(row[c])
        entry["trace"] = _resolve(row["trace"]) if row.get("trace") else None
        samples.append(entry)
    return samples


def run_batch(
    *,
    manifest_path: str | Path,
    outdir: str | Path,
    config: DecomposeConfig = DecomposeConfig(),
    plot: bool = True,
    report: bool = True,
    progress: bool = True,
) -> Dict[str, Any]:
    """Decompose every sample of a manifest; failing samples are recorded, not fatal."""
    t0 = time.time()
    outdir_path = ensure_outdir(outdir)
    samples = read_manifest(manifest_path)

    it = samples
    if progress:
        it = tqdm(samples, unit="sample", desc="Decomposing")

    results: List[Dict[str, Any]] = []
    counts = {"samples_total": 0, "samples_ok": 0, "samples_error": 0}
    for entry in it:
        counts["samples_total"] += 1
        name = str(entry["sample"])
        try:
            summary = run_sample(
                basecalls_path=str(entry["basecalls"]),
                alignment_path=str(entry["alignment"]),
                reference_path=str(entry["reference"]),
                trace_path=entry["trace"],
                outprefix=outdir_path / name,
                config=config,
                sample=name,
                plot=plot,
                report=report,
            )
        except (ValueError, OSError) as e:
            logger.error("Sample %s failed: %s", name, e)
            counts["samples_error"] += 1
            results.append({"sample": name, "status": "error", "error": f"{e.__class__.__name__}: {e}"})
            continue
        counts["samples_ok"] += 1
        results.append(
            {
                "sample": name,
                "status": "ok",
                "outcome": summary["decomposition"]["outcome"],
                "shift": summary["decomposition"]["shift"],
                "summary": summary["outputs"]["summary"],
            }
        )

    batch = {
        "manifest": str(manifest_path),
        "counts": counts,
        "samples": results,
        "runtime_seconds": float(time.time() - t0),
    }
    write_json(outdir_path / "batch_summary.json", batch)
    return batch
