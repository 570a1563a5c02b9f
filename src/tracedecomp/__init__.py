"""TraceDecomp: canonical indel placement for Sanger trace decomposition.

Public API is intentionally small; most users should use the CLI:

    tracedecomp decompose --basecalls ... --alignment ... --reference ... --outprefix ...

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
