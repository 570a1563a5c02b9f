import logging
import random

import numpy as np

from tracedecomp.breakpoint import confidence_gap, find_breakpoint, find_homozygous_breakpoint
from tracedecomp.models import Alignment, DecomposeConfig

_SWAP = {"A": "C", "C": "G", "G": "T", "T": "A"}


def profile_from_gaps(gaps: list[float]) -> np.ndarray:
    prof = np.zeros((6, len(gaps)))
    for j, g in enumerate(gaps):
        prof[0, j] = 0.5 + g / 2.0
        prof[1, j] = 0.5 - g / 2.0
    return prof


def random_seq(n: int, seed: int = 3) -> str:
    rng = random.Random(seed)
    return "".join(rng.choice("ACGT") for _ in range(n))


def mutate(seq: str) -> str:
    return "".join(_SWAP[c] for c in seq)


def test_confidence_gap() -> None:
    prof = profile_from_gaps([0.8, 0.0])
    gaps = confidence_gap(prof)
    assert np.allclose(gaps, [0.8, 0.0])
    assert np.allclose(confidence_gap(np.zeros((6, 2))), [0.0, 0.0])


def test_signal_breakpoint_at_jump() -> None:
    bp = find_breakpoint(profile_from_gaps([0.9] * 60 + [0.1] * 40))
    assert bp.indelshift
    assert bp.breakpoint == 60
    assert bp.traceleft
    assert abs(bp.best_diff - 0.8) < 1e-9


def test_signal_breakpoint_weak_left() -> None:
    bp = find_breakpoint(profile_from_gaps([0.1] * 60 + [0.9] * 40))
    assert bp.indelshift
    assert bp.breakpoint == 60
    assert not bp.traceleft


def test_signal_flat_reports_no_shift() -> None:
    bp = find_breakpoint(profile_from_gaps([0.5] * 100))
    assert not bp.indelshift
    assert bp.breakpoint == 100
    assert bp.traceleft
    assert bp.best_diff == 0.0


def test_signal_short_profile_reports_no_shift() -> None:
    bp = find_breakpoint(profile_from_gaps([0.9] * 20 + [0.1] * 20))
    assert not bp.indelshift
    assert bp.breakpoint == 40


def test_signal_window_override() -> None:
    config = DecomposeConfig(window=5)
    bp = find_breakpoint(profile_from_gaps([0.9] * 20 + [0.1] * 20), config)
    assert bp.indelshift
    assert bp.breakpoint == 20


def test_homozygous_breakpoint_mismatches_right() -> None:
    ref = random_seq(100)
    query = ref[:60] + mutate(ref[60:])
    bp = find_homozygous_breakpoint(Alignment(query=query, reference=ref))
    assert bp is not None
    assert bp.indelshift
    # consensus bases up to and including column 60
    assert bp.breakpoint == 61
    assert bp.traceleft
    assert bp.best_diff == 1.0


def test_homozygous_breakpoint_mismatches_left() -> None:
    ref = random_seq(100)
    query = mutate(ref[:40]) + ref[40:]
    bp = find_homozygous_breakpoint(Alignment(query=query, reference=ref))
    assert bp is not None
    assert bp.indelshift
    assert bp.breakpoint == 41
    assert not bp.traceleft


def test_homozygous_identical_reports_no_shift() -> None:
    ref = random_seq(100)
    bp = find_homozygous_breakpoint(Alignment(query=ref, reference=ref))
    assert bp is not None
    assert not bp.indelshift
    assert bp.breakpoint == 74
    assert bp.best_diff == 0.0


def test_homozygous_counts_leading_consensus_bases() -> None:
    ref = random_seq(100)
    bp = find_homozygous_breakpoint(Alignment(query="GG" + ref, reference="--" + ref))
    assert bp is not None
    assert not bp.indelshift
    assert bp.breakpoint == 76


def test_homozygous_without_aligned_span_fails(caplog) -> None:
    with caplog.at_level(logging.ERROR):
        assert find_homozygous_breakpoint(Alignment(query="ACGT----", reference="----ACGT")) is None
    assert "No valid alignment" in caplog.text
    assert find_homozygous_breakpoint(Alignment(query="----", reference="----")) is None
    assert find_homozygous_breakpoint(Alignment(query="A---", reference="A---")) is None
