from __future__ import annotations

import logging
from typing import Sequence

from .models import GAP, Alignment, BaseCalls, Trace

logger = logging.getLogger(__name__)


def check_trace_channels(channels: Sequence[Sequence[float]]) -> None:
    """Ensure a trace has four channels of equal length; raise ValueError otherwise."""
    if len(channels) != 4:
        raise ValueError(f"Trace must have 4 channels (A, C, G, T); got {len(channels)}.")
    lengths = {len(c) for c in channels}
    if len(lengths) != 1:
        raise ValueError(
            "Trace channels have unequal lengths " + str(sorted(lengths)) + ". Re-export the trace table."
        )


def check_basecalls(bc: BaseCalls, trace: Trace | None = None) -> None:
    """Ensure primary, secondary and bcpos describe the same called positions."""
    n = len(bc.bcpos)
    if len(bc.primary) != n or len(bc.secondary) != n:
        raise ValueError(
            f"Base calls are inconsistent: {len(bc.primary)} primary, {len(bc.secondary)} secondary "
            f"and {n} trace positions."
        )
    if len(bc.consensus) > n:
        raise ValueError(f"Consensus ({len(bc.consensus)} bases) is longer than the {n} called positions.")
    if trace is not None and n > 0:
        lo, hi = min(bc.bcpos), max(bc.bcpos)
        if lo < 0 or hi >= trace.nsamples:
            raise ValueError(
                f"Base call positions [{lo}, {hi}] fall outside the trace ({trace.nsamples} samples)."
            )


def check_alignment(align: Alignment) -> None:
    """Ensure both alignment rows have the same number of columns."""
    if len(align.query) != len(align.reference):
        raise ValueError(
            f"Alignment rows differ in length ({len(align.query)} vs {len(align.reference)}). "
            "Provide a two-record FASTA alignment with gaps as '-'."
        )
    if len(align.query) == 0:
        raise ValueError("Alignment is empty.")


def check_alignment_matches_basecalls(align: Alignment, bc: BaseCalls, trim_left: int, trim_right: int) -> None:
    """Warn when the aligned consensus is longer than the trimmed base calls."""
    aligned = sum(1 for ch in align.query if ch != GAP)
    available = len(bc.primary) - trim_left - trim_right
    if aligned > available:
        logger.warning(
            "Aligned consensus has %d bases but only %d trimmed base calls are available; "
            "check --trim-left/--trim-right.",
            aligned,
            available,
        )
