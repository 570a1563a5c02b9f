"""Allele decomposition: canonical placement of an indel shift.

Starting at a breakpoint, every deletion and insertion length up to ``maxindel`` is
scored by the number of reference mismatches that the recorded heterozygosity cannot
explain. The smallest length whose score is both below a robust (median/MAD)
threshold and a clear local minimum wins; when neither side has a winner, insertion
and deletion lengths are searched jointly. The winning shift is then phased into the
primary/secondary base calls.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from .models import (
    GAP,
    NO_CALL,
    Alignment,
    BaseCalls,
    DecomposeConfig,
    Decomposition,
    ReferenceSlice,
    TraceBreakpoint,
)
from .phasing import phase_ref_allele

logger = logging.getLogger(__name__)


def median(values: Sequence[int]) -> int:
    """Upper median: the element at index n // 2 of the sorted values."""
    if len(values) == 0:
        raise ValueError("median of an empty sequence")
    ordered = sorted(values)
    return ordered[len(ordered) // 2]


def median_absolute_deviation(values: Sequence[int], med: int) -> int:
    return median([abs(v - med) for v in values])


def robust_threshold(scores: Sequence[int], madc: float, floor: int = 10) -> Tuple[int, int, int]:
    """Return (median, MAD, threshold) where threshold = median - madc * MAD, floored."""
    med = median(scores)
    mad = median_absolute_deviation(scores, med)
    thres = 0
    if med > madc * mad:
        thres = int(med - madc * mad)
    return med, mad, max(thres, floor)


def local_minima(scores: Sequence[int], thres: int) -> List[int]:
    """Lengths scoring below ``thres`` and under half of at least one neighbour."""
    out: List[int] = []
    for i, s in enumerate(scores):
        if s >= thres:
            continue
        if i + 1 < len(scores) and 2 * s < scores[i + 1]:
            out.append(i)
        elif i > 0 and 2 * s < scores[i - 1]:
            out.append(i)
    return out


class ShiftWalker:
    """Pairs reference columns with called positions after the breakpoint.

    A shift ``(ins, dele)`` skips ``ins`` called positions and ``dele`` alignment
    columns before walking both in lockstep to the end of the alignment or the
    right trim.
    """

    def __init__(self, align: Alignment, bc: BaseCalls, align_index: int, var_index: int, trim_right: int) -> None:
        self.align = align
        self.bc = bc
        self.align_index = align_index
        self.var_index = var_index
        self.stop = min(len(bc.consensus), len(bc.primary)) - trim_right

    def walk(self, ins: int, dele: int) -> Iterator[Tuple[str, int]]:
        ref = self.align.reference
        vi = self.var_index + ins
        j = self.align_index + dele + 1
        while j < len(ref) and vi < self.stop:
            yield ref[j], vi
            j += 1
            vi += 1

    def failed(self, ins: int, dele: int) -> int:
        """Mismatches under the shift that phasing cannot explain."""
        n = 0
        for r, vi in self.walk(ins, dele):
            if r != self.bc.primary[vi] and phase_ref_allele(self.bc, r, vi) == NO_CALL:
                n += 1
        return n

    def commit(self, ins: int, dele: int) -> int:
        """Phase the reference allele into the base calls under the shift.

        Returns the number of mismatches left unresolved.
        """
        unresolved = 0
        for r, vi in self.walk(ins, dele):
            if r == self.bc.primary[vi]:
                continue
            sec = phase_ref_allele(self.bc, r, vi)
            if sec == NO_CALL:
                unresolved += 1
                continue
            self.bc.primary[vi] = r
            self.bc.secondary[vi] = sec
        return unresolved


def locate_breakpoint(align: Alignment, bc: BaseCalls, breakpoint: int, trim_left: int) -> Tuple[int, int, int]:
    """Walk the alignment up to the breakpoint, phasing the reference allele on the way.

    ``breakpoint`` is in trimmed called-position space. Returns
    ``(align_index, var_index, ref_pointer)``: the alignment column and called
    position of the breakpoint, and the number of reference bases before that column.
    Both indices stay 0 when the breakpoint is never reached.
    """
    target = breakpoint + trim_left
    vi = trim_left
    align_index = 0
    var_index = 0
    ref_pointer = 0
    for j in range(len(align)):
        if align.query[j] != GAP and vi < len(bc.primary):
            r = align.reference[j]
            if r != bc.primary[vi]:
                sec = phase_ref_allele(bc, r, vi)
                if sec != NO_CALL:
                    bc.primary[vi] = r
                    bc.secondary[vi] = sec
            vi += 1
            if vi == target:
                align_index = j
                var_index = vi
                break
        if align.reference[j] != GAP:
            ref_pointer += 1
    return align_index, var_index, ref_pointer


def search_complex(score: Callable[[int, int], int], max_ins: int, max_del: int) -> Optional[Tuple[int, int, int]]:
    """Joint insertion/deletion search for complex mutations.

    For every insertion length the deletion lengths are scanned upwards; a pair is a
    candidate when its score is under half the score of the previous deletion length,
    and the lowest candidate overall wins. Returns ``(ins, dele, score)`` or None.
    """
    best: Optional[Tuple[int, int, int]] = None
    for ins in range(max_ins):
        prev = 0
        for dele in range(max_del):
            s = score(ins, dele)
            if 2 * s < prev and (best is None or s < best[2]):
                best = (ins, dele, s)
            prev = s
    return best


def decomposition_table(
    fref: Sequence[int],
    fins: Sequence[int],
    deldecomp: Sequence[int],
    insdecomp: Sequence[int],
    config: DecomposeConfig,
) -> List[Tuple[int, int]]:
    """Diagnostic (offset, score) rows: deletions as offsets <= 0, insertions > 0."""
    width = config.diag_window
    if not deldecomp and not insdecomp:
        width = config.diag_window_failed
    defins = max([width] + [i + config.diag_window for i in insdecomp])
    defdel = max([width] + [i + config.diag_window for i in deldecomp])
    defins = min(defins, len(fins))
    defdel = min(defdel, len(fref))

    table: List[Tuple[int, int]] = [(-i, fref[i]) for i in range(defdel - 1, -1, -1)]
    table.extend((i, fins[i]) for i in range(1, defins))
    return table


def decompose_alleles(
    config: DecomposeConfig,
    align: Alignment,
    bc: BaseCalls,
    bp: TraceBreakpoint,
    rs: ReferenceSlice,
) -> Decomposition:
    """Resolve the indel shift at ``bp`` and phase it into ``bc`` in place.

    Parameters
    ----------
    config:
        Trims, ``maxindel``, ``madc`` and the table/threshold constants.
    align:
        Alignment of the (trimmed) consensus against ``rs.refslice``.
    bc:
        Base calls; ``primary``/``secondary`` are updated where the chosen shift
        explains a mismatch with the reference.
    bp:
        Breakpoint in trimmed called-position space.
    rs:
        Reference slice the consensus was aligned to.

    Returns
    -------
    Decomposition
        Scores, threshold, candidates, the committed shift and the diagnostic table.
        ``outcome`` is ``'failed'`` when no shift could be resolved; the base calls
        are then left as phased up to the breakpoint.
    """
    config.validate()
    rtrim = config.trim_right
    breakpoint = bp.breakpoint + config.trim_left

    align_index, var_index, ref_pointer = locate_breakpoint(align, bc, bp.breakpoint, config.trim_left)
    walker = ShiftWalker(align, bc, align_index, var_index, rtrim)

    maxdel = 2
    if len(rs.refslice) > ref_pointer + rtrim + 2:
        maxdel = len(rs.refslice) - (ref_pointer + rtrim)
    max_del = min(config.maxindel, maxdel // 2)
    fref = [walker.failed(0, dele) for dele in range(max_del)]

    med, mad, thres = robust_threshold(fref, config.madc, floor=config.min_threshold)
    logger.debug("Deletion scores: median=%d MAD=%d threshold=%d", med, mad, thres)
    deldecomp = local_minima(fref, thres)

    maxins = max(len(bc.consensus) - (rtrim + breakpoint), 0)
    max_ins = min(config.maxindel, maxins // 2)
    fins = [fref[0]] + [walker.failed(ins, 0) for ins in range(1, max_ins)]
    insdecomp = local_minima(fins, thres)

    result = Decomposition(
        align_index=align_index,
        var_index=var_index,
        fref=fref,
        fins=fins,
        median=med,
        mad=mad,
        threshold=thres,
        deldecomp=sorted(deldecomp),
        insdecomp=sorted(insdecomp),
        outcome="failed",
        table=decomposition_table(fref, fins, deldecomp, insdecomp, config),
    )

    if result.deldecomp:
        result.outcome = "deletion"
        result.shift = (0, result.deldecomp[0])
    elif result.insdecomp:
        result.outcome = "insertion"
        result.shift = (result.insdecomp[0], 0)
    else:
        best = search_complex(walker.failed, max_ins, max_del)
        if best is None:
            logger.warning("Allele decomposition failed, primary & secondary base calls unchanged.")
            return result
        ins, dele, err = best
        logger.info("Complex mutation, decomposition: ins: %d, del: %d, error: %d", ins, dele, err)
        result.outcome = "complex"
        result.shift = (ins, dele)

    result.residual = walker.commit(*result.shift)
    logger.info(
        "Decomposition %s: ins=%d del=%d (threshold %d, %d unresolved mismatches)",
        result.outcome,
        result.shift[0],
        result.shift[1],
        thres,
        result.residual,
    )
    return result
