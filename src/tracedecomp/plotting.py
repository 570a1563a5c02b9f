from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence, Tuple

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def plot_decomposition(
    *,
    table: Sequence[Tuple[int, int]],
    out_png: str | Path,
    threshold: Optional[int] = None,
    shift: Optional[Tuple[int, int]] = None,
    title: str = "Allele decomposition",
) -> None:
    """Bar plot of mismatch score per indel offset (deletions negative, insertions positive)."""
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    offsets = [o for o, _ in table]
    scores = [s for _, s in table]
    colors = ["tab:red" if o < 0 else "tab:blue" for o in offsets]
    if shift is not None:
        chosen = shift[0] if shift[0] > 0 else -shift[1]
        colors = ["black" if o == chosen else c for o, c in zip(offsets, colors)]

    plt.figure(figsize=(8, 3.5))
    plt.bar(offsets, scores, color=colors, width=0.8)
    if threshold is not None:
        plt.axhline(threshold, color="grey", linestyle="--", linewidth=1, label=f"threshold {threshold}")
        plt.legend(loc="upper right")
    plt.xlabel("Indel length (deletion < 0 < insertion)")
    plt.ylabel("Unexplained mismatches")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
