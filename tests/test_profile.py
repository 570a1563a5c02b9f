from typing import Tuple

import numpy as np
import pytest

from tracedecomp.models import REFERENCE_TRACE, BaseCalls, ReferenceSlice, Trace
from tracedecomp.profile import (
    copy_profile,
    create_profile,
    reference_profile,
    reverse_complement_profile,
    sequence_profile,
)


def make_trace() -> Tuple[Trace, BaseCalls]:
    signal = np.array(
        [
            [10, 0, 0, 5, 1, 7],
            [0, 0, 30, 5, 2, 7],
            [0, 0, 10, 5, 3, 7],
            [30, 0, 0, 5, 4, 7],
        ],
        dtype=float,
    )
    bc = BaseCalls(
        consensus="TNCNTN",
        primary=list("TNCNTN"),
        secondary=list("TNCNTN"),
        bcpos=[0, 1, 2, 3, 4, 5],
    )
    return Trace(signal=signal), bc


def test_zero_signal_is_uniform() -> None:
    trace, bc = make_trace()
    prof = create_profile(trace, bc)
    assert prof.shape == (6, 6)
    assert list(prof[:4, 1]) == [0.25, 0.25, 0.25, 0.25]
    assert prof[4, 1] == 0.0
    assert prof[5, 1] == 0.0


def test_base_rows_sum_to_one() -> None:
    trace, bc = make_trace()
    prof = create_profile(trace, bc)
    assert np.allclose(prof[:4].sum(axis=0), 1.0)
    assert np.all(prof[4:] == 0.0)
    assert prof[3, 0] == pytest.approx(0.75)
    assert prof[1, 2] == pytest.approx(0.75)


def test_trimmed_profile_matches_window() -> None:
    trace, bc = make_trace()
    full = create_profile(trace, bc)
    trimmed = create_profile(trace, bc, 1, 2)
    assert trimmed.shape == (6, 3)
    assert np.array_equal(trimmed, full[:, 1:4])


def test_overtrim_falls_back_to_full_profile() -> None:
    trace, bc = make_trace()
    assert np.array_equal(create_profile(trace, bc, 4, 2), create_profile(trace, bc))


def test_reverse_complement_profile() -> None:
    trace, bc = make_trace()
    prof = create_profile(trace, bc)
    rc = reverse_complement_profile(prof)
    # last column of A becomes first column of T
    assert rc[0, 0] == prof[3, 5]
    assert rc[1, 0] == prof[2, 5]
    assert rc[3, 5] == prof[0, 0]
    assert np.array_equal(reverse_complement_profile(rc), prof)


def test_copy_profile_is_independent() -> None:
    trace, bc = make_trace()
    prof = create_profile(trace, bc)
    cp = copy_profile(prof)
    assert np.array_equal(cp, prof)
    cp[0, 0] = 99.0
    assert prof[0, 0] != 99.0


def test_sequence_profile() -> None:
    prof = sequence_profile("ACR-X")
    assert prof[0, 0] == 1.0
    assert prof[1, 1] == 1.0
    assert prof[0, 2] == 0.5 and prof[2, 2] == 0.5
    assert prof[5, 3] == 1.0
    assert prof[4, 4] == 1.0
    assert np.allclose(prof.sum(axis=0), 1.0)


def test_reference_profile_from_trace_loader() -> None:
    trace, bc = make_trace()
    rs = ReferenceSlice(refslice="", filetype=REFERENCE_TRACE)
    prof = reference_profile(rs, load_trace=lambda: (trace, bc))
    assert np.array_equal(prof, create_profile(trace, bc))

    with pytest.raises(ValueError):
        reference_profile(rs)
    with pytest.raises(ValueError, match="Unknown reference filetype"):
        reference_profile(ReferenceSlice(refslice="ACGT", filetype="ab1"))
