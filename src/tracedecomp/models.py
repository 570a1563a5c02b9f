from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

# Row order of a 6xN profile.
PROFILE_ROWS = ("A", "C", "G", "T", "N", "-")

GAP = "-"
NO_CALL = "N"

REFERENCE_SEQUENCE = "sequence"
REFERENCE_TRACE = "trace"


@dataclass(frozen=True)
class Trace:
    """Raw per-channel signal of a trace.

    Attributes
    ----------
    signal:
        4xN array of intensities, rows in A, C, G, T order, columns indexed by raw
        trace sample position.
    """

    signal: np.ndarray

    @property
    def nsamples(self) -> int:
        return int(self.signal.shape[1])


@dataclass
class BaseCalls:
    """Base calls of a trace; primary/secondary are mutated by the decomposition."""

    consensus: str
    primary: List[str]
    secondary: List[str]
    bcpos: List[int]

    def __post_init__(self) -> None:
        self.primary = list(self.primary)
        self.secondary = list(self.secondary)
        self.bcpos = [int(p) for p in self.bcpos]

    def __len__(self) -> int:
        return len(self.bcpos)

    @property
    def primary_seq(self) -> str:
        return "".join(self.primary)

    @property
    def secondary_seq(self) -> str:
        return "".join(self.secondary)


@dataclass(frozen=True)
class ReferenceSlice:
    refslice: str
    filetype: str = REFERENCE_SEQUENCE


@dataclass(frozen=True)
class TraceBreakpoint:
    breakpoint: int
    traceleft: bool = True
    indelshift: bool = False
    best_diff: float = 0.0


@dataclass(frozen=True)
class Alignment:
    """Two-row alignment: consensus/query on top, reference below, '-' for gaps."""

    query: str
    reference: str

    def __len__(self) -> int:
        return len(self.query)


@dataclass(frozen=True)
class DecomposeConfig:
    """Tunables of breakpoint detection and allele decomposition.

    Attributes
    ----------
    trim_left, trim_right:
        Called positions excluded from the search at each end of the trace.
    maxindel:
        Maximum insertion/deletion length searched.
    madc:
        Multiplier applied to the median absolute deviation of the deletion scores.
    window:
        Sliding window size of both breakpoint detectors.
    min_diff:
        Smallest window contrast reported as an indel shift.
    min_threshold:
        Floor of the mismatch acceptance threshold.
    diag_window, diag_window_failed:
        Number of offsets per side written to the decomposition table when a
        candidate was found / when none was.
    """

    trim_left: int = 0
    trim_right: int = 0
    maxindel: int = 1000
    madc: float = 5.0
    window: int = 25
    min_diff: float = 0.25
    min_threshold: int = 10
    diag_window: int = 15
    diag_window_failed: int = 50

    def validate(self) -> None:
        if self.trim_left < 0 or self.trim_right < 0:
            raise ValueError("Trim counts must be >= 0 (check --trim-left/--trim-right).")
        if self.maxindel < 1:
            raise ValueError("maxindel must be >= 1 (check --maxindel).")
        if self.window < 1:
            raise ValueError("window must be >= 1 (check --window).")
        if self.madc < 0:
            raise ValueError("madc must be >= 0 (check --madc).")
        if self.min_diff < 0:
            raise ValueError("min_diff must be >= 0 (check --min-diff).")
        if self.min_threshold < 0:
            raise ValueError("min_threshold must be >= 0.")
        if self.diag_window < 0 or self.diag_window_failed < 0:
            raise ValueError("Diagnostic table widths must be >= 0.")


@dataclass
class Decomposition:
    """Result of one allele decomposition.

    ``table`` holds the (offset, score) rows of the decomposition report; deletions
    carry non-positive offsets, insertions positive ones.
    """

    align_index: int
    var_index: int
    fref: List[int]
    fins: List[int]
    median: int
    mad: int
    threshold: int
    deldecomp: List[int]
    insdecomp: List[int]
    outcome: str  # 'deletion', 'insertion', 'complex' or 'failed'
    shift: Optional[Tuple[int, int]] = None  # (ins, del) committed
    table: List[Tuple[int, int]] = field(default_factory=list)
    residual: Optional[int] = None  # unresolved mismatches under the committed shift
