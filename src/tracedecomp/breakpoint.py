"""Breakpoint detection by sliding-window contrast.

Two detectors share the same scan: the signal-based one contrasts the confidence gap
of a profile, the homozygous one contrasts the mismatch rate of an alignment.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from .models import GAP, Alignment, DecomposeConfig, TraceBreakpoint

logger = logging.getLogger(__name__)

_SIGNAL_FLOOR = 0.001


def confidence_gap(profile: np.ndarray) -> np.ndarray:
    """Per column, best minus second best row value (each floored at 0.001)."""
    if profile.shape[1] == 0:
        return np.zeros(0, dtype=np.float64)
    top = np.sort(profile, axis=0)[::-1]
    best = np.maximum(top[0], _SIGNAL_FLOOR)
    snd = np.maximum(top[1], _SIGNAL_FLOOR)
    return best - snd


def _window_means(values: np.ndarray, window: int) -> np.ndarray:
    """Mean of values[i - window : i] for i in [0, len(values)]."""
    csum = np.concatenate(([0.0], np.cumsum(values, dtype=np.float64)))
    means = np.full(len(csum), np.nan)
    means[window:] = (csum[window:] - csum[:-window]) / float(window)
    return means


def find_breakpoint(profile: np.ndarray, config: DecomposeConfig = DecomposeConfig()) -> TraceBreakpoint:
    """Locate the sharpest change of the confidence gap along a profile.

    ``traceleft`` is True when the left window carries the stronger signal.
    """
    sigratio = confidence_gap(profile)
    n = len(sigratio)
    w = config.window

    best_diff = 0.0
    breakpoint = 0
    traceleft = True
    if n > 2 * w:
        means = _window_means(sigratio, w)
        idx = np.arange(w, n - w)
        # means[i] covers [i - w, i); means[i + w] covers [i, i + w)
        left = means[idx]
        right = means[idx + w]
        diffs = np.abs(right - left)
        k = int(np.argmax(diffs))
        if diffs[k] > 0:
            breakpoint = int(idx[k])
            best_diff = float(diffs[k])
            traceleft = not bool(left[k] < right[k])

    if best_diff < config.min_diff:
        logger.debug("No indel shift detected (best contrast %.3f).", best_diff)
        return TraceBreakpoint(breakpoint=n, traceleft=True, indelshift=False, best_diff=0.0)

    logger.info("Signal breakpoint at %d (contrast %.3f, traceleft=%s).", breakpoint, best_diff, traceleft)
    return TraceBreakpoint(breakpoint=breakpoint, traceleft=traceleft, indelshift=True, best_diff=best_diff)


def _aligned_span(align: Alignment) -> Optional[Tuple[int, int]]:
    cols = [j for j in range(len(align)) if align.query[j] != GAP and align.reference[j] != GAP]
    if len(cols) == 0 or cols[0] >= cols[-1]:
        return None
    return cols[0], cols[-1]


def find_homozygous_breakpoint(
    align: Alignment,
    config: DecomposeConfig = DecomposeConfig(),
) -> Optional[TraceBreakpoint]:
    """Locate the sharpest change of the mismatch rate along an alignment.

    The breakpoint is reported as the number of consensus bases up to and including
    the breakpoint column. ``traceleft`` is True when the left window matches the
    reference better than the right one. Returns None if consensus and reference
    share no aligned span.
    """
    span = _aligned_span(align)
    if span is None:
        logger.error("No valid alignment found between consensus and reference!")
        return None
    align_start, align_end = span
    w = config.window
    query = align.query
    ref = align.reference

    mismatch: List[int] = [int(q != r) for q, r in zip(query, ref)]
    var_index = sum(1 for ch in query[: min(align_start + w, len(align))] if ch != GAP)

    best_diff = 0.0
    breakpoint = 0
    traceleft = True
    for i in range(align_start + w, align_end - w):
        if query[i] != GAP:
            var_index += 1
        left = sum(mismatch[i - w : i]) / float(w)
        right = sum(mismatch[i : i + w]) / float(w)
        diff = abs(right - left)
        if diff > best_diff:
            breakpoint = var_index
            best_diff = diff
            traceleft = left < right

    if best_diff < config.min_diff:
        logger.debug("No indel shift detected in alignment (best contrast %.3f).", best_diff)
        return TraceBreakpoint(breakpoint=var_index, traceleft=True, indelshift=False, best_diff=0.0)

    logger.info(
        "Homozygous breakpoint at %d (contrast %.3f, traceleft=%s).", breakpoint, best_diff, traceleft
    )
    return TraceBreakpoint(breakpoint=breakpoint, traceleft=traceleft, indelshift=True, best_diff=best_diff)
