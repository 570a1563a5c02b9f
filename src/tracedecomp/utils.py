from __future__ import annotations

import gzip
import json
import logging
from pathlib import Path
from typing import Any, TextIO

import numpy as np

logger = logging.getLogger(__name__)


def ensure_outdir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def open_textmaybe_gzip(path: str | Path, mode: str = "rt") -> TextIO:
    p = str(path)
    if p.endswith(".gz"):
        return gzip.open(p, mode)  # type: ignore[return-value]
    return open(p, mode)


def _json_default(obj: Any) -> Any:
    # numpy scalars/arrays from profiles and paths from the CLI
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, Path):
        return str(obj)
    raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")


def write_json(path: str | Path, obj: Any) -> None:
    with open(path, "wt", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, sort_keys=True, default=_json_default)


def with_suffix(prefix: str | Path, suffix: str) -> Path:
    """Append ``suffix`` to an output prefix (``out`` -> ``out.decomp``)."""
    return Path(str(prefix) + suffix)
