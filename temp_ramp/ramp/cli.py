#!/usr/bin/env python3
"""
Gradual post-first-layer temperature drop for slicer G-code.

Usage:
    temp-ramp print.gcode
    temp-ramp print.gcode --step 3 --step-period 10 --csv ramp_log.csv --log changes.log

After the M108 marker the first M104 (the steady-state target) is replaced by
a series of M104 commands, each ``--step`` degrees lower than the last and
spaced ``--step-period`` seconds of estimated motion time apart. The file is
rewritten in place through a temporary ``<input>.tempmod``.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .files import rewrite_file
from .logger import LogConfig, RunLogger
from .policy import RampPolicy

def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="temp-ramp",
        description="Ramp the hotend temperature down after the first layer instead of dropping it at once.",
    )
    ap.add_argument("infile", help="G-code file to rewrite in place")
    ap.add_argument("--step", type=int, default=3, help="Degrees dropped per step (default 3)")
    ap.add_argument("--step-period", type=float, default=10.0,
                    help="Seconds of estimated motion time between steps (default 10)")
    ap.add_argument("--block-size", type=int, default=65536, help="Output block size in bytes")
    ap.add_argument("--tool", type=int, default=None, help="Tool index written on inserted M104 lines")
    ap.add_argument("--suffix", default=".tempmod", help="Suffix of the temporary output file")
    ap.add_argument("--csv", dest="csvfile", default=None, help="CSV run log of ramp events")
    ap.add_argument("--log-moves", action="store_true", help="Also log every move while ramping")
    ap.add_argument("--log", dest="logfile", default=None, help="Human-readable change log")
    return ap

def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    try:
        policy = RampPolicy(
            step=args.step,
            step_period_s=args.step_period,
            block_size=args.block_size,
            tool=args.tool,
            suffix=args.suffix,
        )
    except ValueError as e:
        ap.error(str(e))

    in_path = Path(args.infile)
    if not in_path.is_file():
        print(f"ERROR: input file not found: {in_path}", file=sys.stderr)
        return 1

    run_logger = None
    if args.csvfile:
        csv_path = Path(args.csvfile)
        try:
            run_logger = RunLogger(LogConfig(out_dir=str(csv_path.parent),
                                             csv_name=csv_path.name,
                                             log_moves=args.log_moves))
        except OSError as e:
            print(f"ERROR: Failed to open CSV log: {e}", file=sys.stderr)
            return 1

    try:
        result = rewrite_file(in_path, policy, run_logger=run_logger)
    except OSError as e:
        print(f"ERROR: Failed to rewrite {in_path}: {e}", file=sys.stderr)
        print("       The original file was left unchanged.", file=sys.stderr)
        return 1
    finally:
        if run_logger is not None:
            run_logger.close()

    if args.logfile:
        try:
            Path(args.logfile).write_text("\n".join(result.changes) + "\n", encoding="utf-8")
        except OSError as e:
            print(f"WARNING: Failed to write change log: {e}", file=sys.stderr)

    s = result.summary
    print("Finished!")
    print(f"✓ Rewrote {result.path} ({s.lines_in} lines in, {s.lines_out} lines out, "
          f"{result.blocks_written} blocks)")
    print(f"  Preamble temp: {s.preamble_temp}  target: {s.target_temp}  final: {s.final_temp}")
    print(f"  Steps: {s.steps}  motion time ramped: {s.elapsed_s:.1f}s  state: {s.phase.value}")
    if run_logger is not None:
        print(f"✓ Saved CSV run log: {run_logger.path} ({run_logger.rows} events)")
    if args.logfile:
        print(f"✓ Saved change log: {args.logfile} ({len(result.changes)} changes)")

    if s.target_temp is None:
        print("WARNING: no target temperature after the M108 marker; no temperature was rewritten.",
              file=sys.stderr)
    if s.malformed_lines:
        print(f"WARNING: {s.malformed_lines} unparseable M104/G1 lines passed through unchanged.",
              file=sys.stderr)
    if s.zero_feed_moves:
        print(f"WARNING: {s.zero_feed_moves} moves with feed rate <= 0 counted as instantaneous.",
              file=sys.stderr)
    return 0

if __name__ == "__main__":
    sys.exit(main())
