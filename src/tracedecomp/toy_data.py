from __future__ import annotations

import random
from pathlib import Path
from typing import Any, Dict, List

import numpy as np

from .file_io import write_alignment, write_basecalls, write_fasta, write_trace
from .models import Alignment, BaseCalls, Trace
from .phasing import iupac
from .utils import ensure_outdir, write_json

_CHANNEL = {"A": 0, "C": 1, "G": 2, "T": 3}
_PEAK_SPACING = 10
_BACKGROUND = 20.0


def _random_sequence(rng: random.Random, n: int) -> str:
    # no homopolymer runs: every base past an insertion differs from its shifted copy
    seq = [rng.choice("ACGT")]
    while len(seq) < n:
        seq.append(rng.choice([b for b in "ACGT" if b != seq[-1]]))
    return "".join(seq[:n])


def _other_base(*avoid: str) -> str:
    for base in "ACGT":
        if base not in avoid:
            return base
    return "A"


def _add_peak(signal: np.ndarray, base: str, center: int, height: float) -> None:
    # triangular peak over +-4 samples
    row = _CHANNEL[base]
    for off in range(-4, 5):
        s = center + off
        if 0 <= s < signal.shape[1]:
            signal[row, s] += height * (1.0 - abs(off) / 5.0)


def make_toy_sample(*, length: int = 160, breakpoint: int = 70, seed: int = 7) -> Dict[str, Any]:
    """Synthetic trace of a heterozygous 1-bp insertion.

    Up to ``breakpoint`` both alleles agree. From there on the mutant allele carries
    one extra base and dominates the trace, so the primary calls follow the mutant
    and the secondary calls hold the IUPAC code of both alleles.
    """
    rng = random.Random(seed)
    ref = _random_sequence(rng, length)
    ins_base = _other_base(ref[breakpoint], ref[breakpoint - 1])
    mutant = (ref[:breakpoint] + ins_base + ref[breakpoint:])[:length]

    signal = np.full((4, length * _PEAK_SPACING + _PEAK_SPACING), _BACKGROUND)
    primary: List[str] = []
    secondary: List[str] = []
    bcpos: List[int] = []
    for i in range(length):
        center = i * _PEAK_SPACING + _PEAK_SPACING // 2
        wt, mt = ref[i], mutant[i]
        if wt == mt:
            _add_peak(signal, wt, center, 1100.0)
        else:
            _add_peak(signal, mt, center, 600.0)
            _add_peak(signal, wt, center, 500.0)
        primary.append(mt)
        secondary.append(iupac(mt, wt))
        bcpos.append(center)

    consensus = "".join(primary)
    bc = BaseCalls(consensus=consensus, primary=primary, secondary=secondary, bcpos=bcpos)
    # The aligner places the extra base as a reference gap at the breakpoint.
    align = Alignment(query=consensus, reference=ref[:breakpoint] + "-" + ref[breakpoint : length - 1])
    return {
        "trace": Trace(signal=signal),
        "basecalls": bc,
        "alignment": align,
        "reference": ref[: length - 1],
        "wildtype": ref,
        "mutant": mutant,
        "breakpoint": breakpoint,
        "insertion": ins_base,
    }


def make_toy_homozygous(toy: Dict[str, Any]) -> Dict[str, Any]:
    """Homozygous counterpart of a toy sample: both alleles carry the insertion.

    The consensus is aligned without gaps, so every column past the insertion
    mismatches the reference and the alignment-based detector finds the shift.
    """
    mutant = toy["mutant"]
    bc = BaseCalls(
        consensus=mutant,
        primary=list(mutant),
        secondary=list(mutant),
        bcpos=list(toy["basecalls"].bcpos),
    )
    align = Alignment(query=mutant, reference=toy["wildtype"][: len(mutant)])
    return {"basecalls": bc, "alignment": align}


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Write a toy sample (trace, base calls, alignment, reference) plus a manifest.

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)
    toy = make_toy_sample()

    trace_path = outdir_p / "toy.trace.tsv"
    basecalls_path = outdir_p / "toy.basecalls.tsv"
    alignment_path = outdir_p / "toy.align.fa"
    reference_path = outdir_p / "toy.ref.fa"
    hom_basecalls_path = outdir_p / "toy_hom.basecalls.tsv"
    hom_alignment_path = outdir_p / "toy_hom.align.fa"
    manifest_path = outdir_p / "manifest.tsv"

    write_trace(trace_path, toy["trace"])
    write_basecalls(basecalls_path, toy["basecalls"])
    write_alignment(alignment_path, toy["alignment"])
    write_fasta(reference_path, [("toy_ref", toy["reference"])])

    hom = make_toy_homozygous(toy)
    write_basecalls(hom_basecalls_path, hom["basecalls"])
    write_alignment(hom_alignment_path, hom["alignment"])

    manifest_path.write_text(
        "sample\tbasecalls\talignment\treference\ttrace\n"
        f"toy_het\t{basecalls_path.name}\t{alignment_path.name}\t{reference_path.name}\t{trace_path.name}\n"
        f"toy_hom\t{hom_basecalls_path.name}\t{hom_alignment_path.name}\t{reference_path.name}\t\n",
        encoding="utf-8",
    )

    summary = {
        "trace": str(trace_path),
        "basecalls": str(basecalls_path),
        "alignment": str(alignment_path),
        "hom_basecalls": str(hom_basecalls_path),
        "hom_alignment": str(hom_alignment_path),
        "reference": str(reference_path),
        "manifest": str(manifest_path),
        "outdir": str(outdir_p),
    }
    write_json(outdir_p / "toy_summary.json", summary)
    return summary
