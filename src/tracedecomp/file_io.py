"""Readers and writers for trace tables, base calls, alignments and references.

All tables are tab-separated with a header line and may be gzip-compressed
(``.gz`` suffix). Alignments and references are FASTA, read with pysam.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np
import pysam

from .models import REFERENCE_SEQUENCE, Alignment, BaseCalls, ReferenceSlice, Trace
from .utils import open_textmaybe_gzip
from .validation import check_alignment, check_basecalls, check_trace_channels

logger = logging.getLogger(__name__)

TRACE_COLUMNS = ("A", "C", "G", "T")
BASECALL_COLUMNS = ("bcpos", "consensus", "primary", "secondary")
DECOMP_HEADER = ("indel", "decomp")


def _read_header(fh, path: str | Path, required: Sequence[str]) -> List[str]:
    header = fh.readline().rstrip("\n").split("\t")
    missing = [c for c in required if c not in header]
    if missing:
        raise ValueError(f"{path}: missing column(s) {missing}; expected header {list(required)}.")
    return header


def load_trace(path: str | Path) -> Trace:
    """Load a trace table with one row per trace sample and columns A, C, G, T."""
    with open_textmaybe_gzip(path, "rt") as fh:
        header = _read_header(fh, path, TRACE_COLUMNS)
        cols = [header.index(c) for c in TRACE_COLUMNS]
        rows = [line.rstrip("\n").split("\t") for line in fh if line.strip()]

    channels: List[List[float]] = [[float(r[c]) for r in rows if c < len(r) and r[c] != ""] for c in cols]
    check_trace_channels(channels)
    signal = np.asarray(channels, dtype=np.float64).reshape(4, -1)
    logger.debug("Loaded trace %s with %d samples", path, signal.shape[1])
    return Trace(signal=signal)


def write_trace(path: str | Path, trace: Trace) -> None:
    with open_textmaybe_gzip(path, "wt") as fh:
        fh.write("\t".join(TRACE_COLUMNS) + "\n")
        for j in range(trace.nsamples):
            fh.write("\t".join(f"{v:g}" for v in trace.signal[:, j]) + "\n")


def load_basecalls(path: str | Path) -> BaseCalls:
    """Load a base-call table with columns bcpos, consensus, primary, secondary."""
    with open_textmaybe_gzip(path, "rt") as fh:
        header = _read_header(fh, path, BASECALL_COLUMNS)
        idx = {c: header.index(c) for c in BASECALL_COLUMNS}
        bcpos: List[int] = []
        consensus: List[str] = []
        primary: List[str] = []
        secondary: List[str] = []
        for lineno, line in enumerate(fh, start=2):
            if not line.strip():
                continue
            fields = line.rstrip("\n").split("\t")
            if len(fields) < len(header):
                raise ValueError(f"{path}:{lineno}: expected {len(header)} columns, found {len(fields)}.")
            bcpos.append(int(fields[idx["bcpos"]]))
            consensus.append(fields[idx["consensus"]].upper())
            primary.append(fields[idx["primary"]].upper())
            secondary.append(fields[idx["secondary"]].upper())

    bc = BaseCalls(consensus="".join(consensus), primary=primary, secondary=secondary, bcpos=bcpos)
    check_basecalls(bc)
    return bc


def write_basecalls(path: str | Path, bc: BaseCalls) -> None:
    with open_textmaybe_gzip(path, "wt") as fh:
        fh.write("\t".join(BASECALL_COLUMNS) + "\n")
        for i, pos in enumerate(bc.bcpos):
            cons = bc.consensus[i] if i < len(bc.consensus) else "N"
            fh.write(f"{pos}\t{cons}\t{bc.primary[i]}\t{bc.secondary[i]}\n")


def _read_fasta(path: str | Path) -> List[Tuple[str, str]]:
    with pysam.FastxFile(str(path)) as fh:
        return [(entry.name, entry.sequence.upper()) for entry in fh]


def write_fasta(path: str | Path, records: Sequence[Tuple[str, str]], width: int = 60) -> None:
    lines: List[str] = []
    for name, seq in records:
        lines.append(f">{name}")
        for i in range(0, len(seq), width):
            lines.append(seq[i : i + width])
    Path(path).write_text("\n".join(lines) + "\n", encoding="utf-8")


def load_alignment(path: str | Path) -> Alignment:
    """Load a two-record FASTA alignment (consensus first, reference second)."""
    records = _read_fasta(path)
    if len(records) < 2:
        raise ValueError(
            f"{path}: alignment FASTA needs two records (consensus, reference); found {len(records)}."
        )
    if len(records) > 2:
        logger.warning("%s: %d records found; using the first two.", path, len(records))
    align = Alignment(query=records[0][1], reference=records[1][1])
    check_alignment(align)
    return align


def write_alignment(path: str | Path, align: Alignment, names: Tuple[str, str] = ("consensus", "reference")) -> None:
    write_fasta(path, [(names[0], align.query), (names[1], align.reference)])


def load_reference(path: str | Path) -> ReferenceSlice:
    """Load the first FASTA record as a sequence reference slice."""
    records = _read_fasta(path)
    if not records:
        raise ValueError(f"{path}: reference FASTA contains no records.")
    return ReferenceSlice(refslice=records[0][1], filetype=REFERENCE_SEQUENCE)
