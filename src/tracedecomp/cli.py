from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .file_io import load_alignment, load_basecalls, load_reference, load_trace
from .models import DecomposeConfig
from .pipeline import planned_outputs, read_manifest, run_batch, run_sample
from .toy_data import make_toy_data
from .utils import ensure_outdir
from .validation import check_basecalls


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    msg = f"{err.__class__.__name__}: {err}"
    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def _add_config_args(p: argparse.ArgumentParser) -> None:
    d = DecomposeConfig()
    p.add_argument("--trim-left", type=int, default=d.trim_left, help="Called positions to skip at the 5' end.")
    p.add_argument("--trim-right", type=int, default=d.trim_right, help="Called positions to skip at the 3' end.")
    p.add_argument("--maxindel", type=int, default=d.maxindel, help="Maximum indel length searched.")
    p.add_argument("--madc", type=float, default=d.madc, help="MAD multiplier for the mismatch threshold.")
    p.add_argument("--window", type=int, default=d.window, help="Breakpoint sliding window size.")
    p.add_argument(
        "--min-diff",
        type=float,
        default=d.min_diff,
        help="Minimum window contrast reported as an indel shift.",
    )
    p.add_argument("--no-plot", action="store_true", help="Do not write the decomposition plot.")
    p.add_argument("--no-report", action="store_true", help="Do not write the HTML report.")
    p.add_argument("--dry-run", action="store_true", help="Validate inputs and print planned outputs.")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")


def _config_from_args(args: argparse.Namespace) -> DecomposeConfig:
    config = DecomposeConfig(
        trim_left=int(args.trim_left),
        trim_right=int(args.trim_right),
        maxindel=int(args.maxindel),
        madc=float(args.madc),
        window=int(args.window),
        min_diff=float(args.min_diff),
    )
    config.validate()
    return config


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tracedecomp",
        description=(
            "TraceDecomp: resolve the ambiguous placement of indels in Sanger trace "
            "alignments and decompose heterozygous base calls into their alleles."
        ),
    )
    p.add_argument("--version", action="version", version=f"tracedecomp {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a synthetic heterozygous-insertion sample for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # decompose
    # -----------------
    d = sub.add_parser(
        "decompose",
        help="Decompose one sample: breakpoint detection, indel shift search, allele phasing.",
    )
    d.add_argument("--basecalls", required=True, type=_path_exists, help="Base-call table (TSV).")
    d.add_argument(
        "--alignment",
        required=True,
        type=_path_exists,
        help="Two-record FASTA alignment (consensus, reference).",
    )
    d.add_argument("--reference", required=True, type=_path_exists, help="Reference slice FASTA.")
    d.add_argument(
        "--trace",
        default=None,
        type=_path_exists,
        help="Trace table (TSV, A/C/G/T). If omitted, the homozygous breakpoint detector is used.",
    )
    d.add_argument("--outprefix", required=True, help="Output prefix (writes <prefix>.decomp etc).")
    d.add_argument("--sample", default=None, help="Sample name (default: basename of --outprefix).")
    _add_config_args(d)

    # -----------------
    # batch
    # -----------------
    b = sub.add_parser(
        "batch",
        help="Decompose all samples of a manifest (sample, basecalls, alignment, reference, [trace]).",
    )
    b.add_argument("--manifest", required=True, type=_path_exists, help="Sample manifest (TSV).")
    b.add_argument("--outdir", required=True, help="Output directory.")
    b.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    _add_config_args(b)

    return p


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def cmd_decompose(args: argparse.Namespace) -> int:
    outprefix = Path(args.outprefix).expanduser().resolve()
    log_path = _log_path(outprefix.parent, outprefix.name + ".log")
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("tracedecomp")
    logger.info("tracedecomp %s", __version__)

    try:
        config = _config_from_args(args)
        plot = not bool(args.no_plot)
        report = not bool(args.no_report)

        if args.dry_run:
            bc = load_basecalls(args.basecalls)
            align = load_alignment(args.alignment)
            rs = load_reference(args.reference)
            if args.trace is not None:
                check_basecalls(bc, load_trace(args.trace))
            print("Dry-run: inputs look OK.")
            print(f"Called positions: {len(bc)}")
            print(f"Alignment columns: {len(align)}")
            print(f"Reference length: {len(rs.refslice)}")
            print(f"Breakpoint detector: {'signal' if args.trace else 'alignment'}")
            print("Planned outputs:")
            for name, path in planned_outputs(outprefix, plot=plot, report=report).items():
                if path:
                    print(f"  {name} -> {path}")
            return 0

        ensure_outdir(outprefix.parent)
        summary = run_sample(
            basecalls_path=args.basecalls,
            alignment_path=args.alignment,
            reference_path=args.reference,
            trace_path=args.trace,
            outprefix=outprefix,
            config=config,
            sample=args.sample,
            plot=plot,
            report=report,
        )
        dec = summary["decomposition"]
        logger.info("Decomposition outcome: %s", dec["outcome"])
        print(summary["outputs"]["decomp"])
        return 0
    except Exception as e:
        return _handle_error(e, log_path=None if args.dry_run else log_path)


def cmd_batch(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    log_path = _log_path(outdir, "batch.log")
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    try:
        config = _config_from_args(args)
        if args.dry_run:
            samples = read_manifest(args.manifest)
            print(f"Dry-run: manifest lists {len(samples)} sample(s).")
            for s in samples:
                missing = [
                    k
                    for k in ("basecalls", "alignment", "reference", "trace")
                    if s[k] and not Path(str(s[k])).exists()
                ]
                status = "OK" if not missing else "missing " + ", ".join(missing)
                print(f"  {s['sample']}: {status}")
            print(f"Planned outputs: {outdir / 'batch_summary.json'}")
            return 0

        batch = run_batch(
            manifest_path=args.manifest,
            outdir=outdir,
            config=config,
            plot=not bool(args.no_plot),
            report=not bool(args.no_report),
            progress=not bool(args.no_progress),
        )
        print(str(outdir / "batch_summary.json"))
        return 0 if batch["counts"]["samples_error"] == 0 else 1
    except Exception as e:
        return _handle_error(e, log_path=None if args.dry_run else log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "decompose":
        return cmd_decompose(args)
    if args.cmd == "batch":
        return cmd_batch(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
