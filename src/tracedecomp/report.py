from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from jinja2 import Template

from .file_io import DECOMP_HEADER
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)


def write_decomposition(path: str | Path, table: Sequence[Tuple[int, int]]) -> Path:
    """Write the decomposition table as two tab-separated columns, indel and decomp."""
    path = Path(path)
    with open_textmaybe_gzip(path, "wt") as fh:
        fh.write("\t".join(DECOMP_HEADER) + "\n")
        for offset, score in table:
            fh.write(f"{offset}\t{score}\n")
    return path


def read_decomposition(path: str | Path) -> List[Tuple[int, int]]:
    table: List[Tuple[int, int]] = []
    with open_textmaybe_gzip(path, "rt") as fh:
        header = fh.readline().rstrip("\n").split("\t")
        if tuple(header) != DECOMP_HEADER:
            raise ValueError(f"{path}: not a decomposition table (header {header}).")
        for line in fh:
            if line.strip():
                offset, score = line.rstrip("\n").split("\t")
                table.append((int(offset), int(score)))
    return table


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>TraceDecomp Report: {{ sample }}</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    pre { padding: 12px; overflow-x: auto; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>TraceDecomp Report</h1>
<p class="small">Sample <code>{{ sample }}</code>, generated: {{ generated_at }}</p>

<h2>Run summary</h2>
<div class="grid">
  <div class="card">
    <h3>Breakpoint</h3>
    <table>
      <tr><th>Detector</th><td>{{ breakpoint.detector }}</td></tr>
      <tr><th>Breakpoint</th><td>{{ breakpoint.breakpoint }}</td></tr>
      <tr><th>Indel shift</th><td>{{ breakpoint.indelshift }}</td></tr>
      <tr><th>Trace left</th><td>{{ breakpoint.traceleft }}</td></tr>
      <tr><th>Contrast</th><td>{{ "%.3f"|format(breakpoint.best_diff) }}</td></tr>
    </table>
  </div>
  <div class="card">
    <h3>Decomposition</h3>
    <table>
      <tr><th>Outcome</th><td>{{ decomposition.outcome }}</td></tr>
      {% if decomposition.shift %}
      <tr><th>Insertion</th><td>{{ decomposition.shift[0] }}</td></tr>
      <tr><th>Deletion</th><td>{{ decomposition.shift[1] }}</td></tr>
      <tr><th>Unresolved mismatches</th><td>{{ decomposition.residual }}</td></tr>
      {% endif %}
      <tr><th>Median / MAD</th><td>{{ decomposition.median }} / {{ decomposition.mad }}</td></tr>
      <tr><th>Threshold</th><td>{{ decomposition.threshold }}</td></tr>
      <tr><th>Deletion candidates</th><td>{{ decomposition.deldecomp|join(", ") or "none" }}</td></tr>
      <tr><th>Insertion candidates</th><td>{{ decomposition.insdecomp|join(", ") or "none" }}</td></tr>
    </table>
  </div>
</div>

{% if plot %}
<h2>Decomposition scores</h2>
<div class="card">
  <img src="{{ plot }}" alt="decomposition scores">
</div>
{% endif %}

<h2>Base calls</h2>
<pre>primary   {{ primary }}
secondary {{ secondary }}</pre>

<h2>Outputs</h2>
<ul>
  {% for name in outputs %}
  <li><code>{{ name }}</code></li>
  {% endfor %}
</ul>

<hr>
<p class="small">TraceDecomp {{ version }}</p>
</body>
</html>"""
)


def render_report(
    *,
    out_path: str | Path,
    version: str,
    summary: Dict[str, Any],
    primary: str,
    secondary: str,
    plot: str | None = None,
) -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        sample=summary.get("sample"),
        breakpoint=summary.get("breakpoint", {}),
        decomposition=summary.get("decomposition", {}),
        outputs=[v for v in summary.get("outputs", {}).values() if v],
        primary=primary,
        secondary=secondary,
        plot=plot,
    )
    out_path.write_text(html, encoding="utf-8")
    logger.info("Report written: %s", out_path)
    return out_path
