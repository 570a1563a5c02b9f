"""Probability-like 6xN base profiles (rows A, C, G, T, N, gap).

Profiles are plain numpy arrays; every function here returns a new array and never
modifies its inputs.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

import numpy as np

from .models import (
    GAP,
    PROFILE_ROWS,
    REFERENCE_SEQUENCE,
    REFERENCE_TRACE,
    BaseCalls,
    ReferenceSlice,
    Trace,
)
from .phasing import AMBIGUITY_PAIRS

logger = logging.getLogger(__name__)

_ROW_INDEX = {base: i for i, base in enumerate(PROFILE_ROWS)}
_N_ROW = _ROW_INDEX["N"]
_GAP_ROW = _ROW_INDEX[GAP]


def _signal_columns(trace: Trace, bcpos: np.ndarray) -> np.ndarray:
    prof = np.zeros((len(PROFILE_ROWS), len(bcpos)), dtype=np.float64)
    if len(bcpos) == 0:
        return prof
    sig = trace.signal[:, bcpos].astype(np.float64)
    total = sig.sum(axis=0)
    flat = total == 0
    with np.errstate(divide="ignore", invalid="ignore"):
        shares = sig / np.where(flat, 1.0, total)
    shares[:, flat] = 0.25
    prof[:4, :] = shares
    return prof


def create_profile(trace: Trace, bc: BaseCalls, trim_left: int = 0, trim_right: int = 0) -> np.ndarray:
    """Build the signal profile at the called positions of ``bc``.

    Each column holds the normalized share of the four channels at that trace
    sample, or 0.25 each when the trace carries no signal there. With trims, only
    the called positions ``[trim_left, len - trim_right)`` are profiled; trims that
    would consume the whole trace are ignored.
    """
    bcpos = np.asarray(bc.bcpos, dtype=np.int64)
    if trim_left + trim_right >= len(bcpos):
        if trim_left or trim_right:
            logger.debug(
                "Trim (%d, %d) exceeds %d called positions; profiling untrimmed trace.",
                trim_left,
                trim_right,
                len(bcpos),
            )
        return _signal_columns(trace, bcpos)
    return _signal_columns(trace, bcpos[trim_left : len(bcpos) - trim_right])


def reverse_complement_profile(p: np.ndarray) -> np.ndarray:
    """Reverse the columns and swap A<->T, C<->G; N and gap rows are carried over."""
    return p[[3, 2, 1, 0, 4, 5], ::-1].copy()


def copy_profile(p: np.ndarray) -> np.ndarray:
    return np.array(p, copy=True)


def sequence_profile(seq: str) -> np.ndarray:
    """One-hot profile of a sequence; two-base IUPAC codes split their weight."""
    prof = np.zeros((len(PROFILE_ROWS), len(seq)), dtype=np.float64)
    for j, ch in enumerate(seq.upper()):
        if ch in "ACGT" or ch == GAP:
            prof[_ROW_INDEX[ch], j] = 1.0
        elif ch in AMBIGUITY_PAIRS:
            for base in AMBIGUITY_PAIRS[ch]:
                prof[_ROW_INDEX[base], j] = 0.5
        else:
            prof[_N_ROW, j] = 1.0
    return prof


def reference_profile(
    rs: ReferenceSlice,
    load_trace: Optional[Callable[[], Tuple[Trace, BaseCalls]]] = None,
) -> np.ndarray:
    """Profile of a reference slice.

    Sequence references are profiled directly. Trace references are base-called by
    the ``load_trace`` collaborator and profiled from their signal. The pipeline
    works on the reference alignment and never calls this; it is the hook for
    aligners that take profiles instead of sequences.
    """
    if rs.filetype == REFERENCE_SEQUENCE:
        return sequence_profile(rs.refslice)
    if rs.filetype == REFERENCE_TRACE:
        if load_trace is None:
            raise ValueError("Trace reference requires a trace loader to build its profile.")
        trace, bc = load_trace()
        return create_profile(trace, bc)
    raise ValueError(
        f"Unknown reference filetype '{rs.filetype}'. "
        f"Use '{REFERENCE_SEQUENCE}' or '{REFERENCE_TRACE}'."
    )
