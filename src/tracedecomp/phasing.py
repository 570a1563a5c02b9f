"""IUPAC ambiguity codes and phasing of secondary calls against a reference base."""

from __future__ import annotations

from typing import Dict, FrozenSet

from .models import NO_CALL, BaseCalls

# Two-base IUPAC codes.
AMBIGUITY_PAIRS: Dict[str, FrozenSet[str]] = {
    "R": frozenset("AG"),
    "Y": frozenset("CT"),
    "S": frozenset("CG"),
    "W": frozenset("AT"),
    "K": frozenset("GT"),
    "M": frozenset("AC"),
}

_PAIR_TO_CODE: Dict[FrozenSet[str], str] = {pair: code for code, pair in AMBIGUITY_PAIRS.items()}

_BASES = frozenset("ACGT")


def iupac(a: str, b: str) -> str:
    """Combine two bases into a single IUPAC symbol (the base itself if equal)."""
    a = a.upper()
    b = b.upper()
    if a == b and a in _BASES:
        return a
    return _PAIR_TO_CODE.get(frozenset((a, b)), NO_CALL)


def phase_ref_allele(bc: BaseCalls, r: str, idx: int) -> str:
    """Secondary call at ``idx`` if the reference base ``r`` is one of the alleles.

    Returns the no-call symbol when the recorded heterozygosity cannot explain ``r``.
    """
    sec = bc.secondary[idx]
    if sec == r:
        return bc.primary[idx]
    if sec == NO_CALL:
        return NO_CALL
    pair = AMBIGUITY_PAIRS.get(sec)
    if pair is None or r not in pair:
        return NO_CALL
    (other,) = pair - {r}
    return iupac(bc.primary[idx], other)
