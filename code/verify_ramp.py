#!/usr/bin/env python3
"""
verify_ramp.py

QA script for temp-ramp output. Keep a copy of the original G-code, run
temp-ramp on the file, then compare:

1) Every output line ends in CRLF
2) Non-temperature lines kept in order, verbatim
3) Inserted M104 values never rise and never go below the target
4) The ramp reaches the target
5) CSV run log sanity (optional): columns, t_s non-decreasing, STEP temps non-increasing

Usage:
    python code/verify_ramp.py --in original.gcode --out print.gcode --csv ramp_log.csv
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from temp_ramp.ramp.gcode import LayerChangeMarker, TemperatureSet, classify

def read_lines(path: Path) -> List[bytes]:
    data = path.read_bytes()
    lines = data.split(b"\n")
    if lines and lines[-1] == b"":
        lines.pop()
    return [ln[:-1] if ln.endswith(b"\r") else ln for ln in lines]

def all_crlf(data: bytes) -> bool:
    if not data:
        return True
    return data.endswith(b"\r\n") and data.count(b"\n") == data.count(b"\r\n")

def temperature_of(line: bytes) -> Optional[int]:
    ins = classify(line)
    if isinstance(ins, TemperatureSet):
        return ins.value
    return None

def target_temperature(lines: List[bytes]) -> Optional[int]:
    """First M104 value after the first M108 marker."""
    after_marker = False
    for ln in lines:
        ins = classify(ln)
        if isinstance(ins, LayerChangeMarker):
            after_marker = True
        elif after_marker and isinstance(ins, TemperatureSet):
            return ins.value
    return None

def align(in_lines: List[bytes], out_lines: List[bytes]) -> Tuple[bool, List[int]]:
    """
    Walk both files together. Output lines that do not match the next input
    line must be M104 commands: the first one standing in for an input M104 is
    the replaced target, the rest are insertions.
    Returns (order_ok, synthesized temperatures in output order).
    """
    synthesized: List[int] = []
    replaced = False
    i = 0
    for ln in out_lines:
        if i < len(in_lines) and ln == in_lines[i]:
            i += 1
            continue
        temp = temperature_of(ln)
        if temp is None:
            return False, synthesized
        synthesized.append(temp)
        if not replaced and i < len(in_lines) and temperature_of(in_lines[i]) is not None:
            replaced = True
            i += 1
    return i == len(in_lines), synthesized

def is_non_increasing(values) -> bool:
    arr = np.asarray(values, dtype=float)
    if arr.size < 2:
        return True
    return bool(np.all(np.diff(arr) <= 0))

def print_result(name: str, ok: bool, detail: str = "") -> None:
    status = "PASS" if ok else "FAIL"
    if detail:
        print(f"[{status}] {name}: {detail}")
    else:
        print(f"[{status}] {name}")

def check_csv(csv_path: Path) -> bool:
    df = pd.read_csv(csv_path)
    required_cols = {"line", "t_s", "type", "temp_c"}
    cols_ok = required_cols.issubset(set(df.columns))
    print_result("CSV has required columns", cols_ok, f"needed={sorted(required_cols)}")
    if not cols_ok:
        return False

    df["t_s"] = pd.to_numeric(df["t_s"], errors="coerce")
    t_ok = bool(df["t_s"].dropna().is_monotonic_increasing)
    print_result("CSV t_s non-decreasing", t_ok, f"rows={len(df)}")

    steps = pd.to_numeric(df.loc[df["type"] == "STEP", "temp_c"], errors="coerce").dropna()
    steps_ok = is_non_increasing(steps.values)
    print_result("CSV STEP temperatures non-increasing", steps_ok, f"steps={len(steps)}")

    counts = df["type"].astype(str).value_counts().to_dict()
    print_result("CSV event counts (informational)", True,
                 ", ".join(f"{k}={v}" for k, v in sorted(counts.items())))
    return t_ok and steps_ok

def main():
    ap = argparse.ArgumentParser(description="Verify temp-ramp output against the original G-code.")
    ap.add_argument("--in", dest="infile", required=True, help="Copy of the original G-code")
    ap.add_argument("--out", dest="outfile", required=True, help="Rewritten G-code")
    ap.add_argument("--csv", dest="csvfile", required=False, help="CSV run log")
    args = ap.parse_args()

    in_path = Path(args.infile)
    out_path = Path(args.outfile)
    if not in_path.exists():
        raise SystemExit(f"Input not found: {in_path}")
    if not out_path.exists():
        raise SystemExit(f"Output not found: {out_path}")

    in_lines = read_lines(in_path)
    out_lines = read_lines(out_path)
    ok = True

    # 1) Line endings
    crlf = all_crlf(out_path.read_bytes())
    print_result("CRLF line endings", crlf)
    ok &= crlf

    # 2) Order
    order_ok, synthesized = align(in_lines, out_lines)
    print_result("Non-temperature lines preserved in order", order_ok,
                 f"in={len(in_lines)}, out={len(out_lines)}")
    ok &= order_ok

    # 3) + 4) Ramp shape
    target = target_temperature(in_lines)
    if target is None:
        print_result("Target temperature found", False, "no M104 after M108; nothing to ramp")
        ok &= not synthesized
    else:
        print_result("Target temperature found", True, f"target={target}")
        mono = is_non_increasing(synthesized)
        print_result("Inserted temperatures non-increasing", mono, f"sequence={synthesized}")
        bounded = all(t >= target for t in synthesized)
        print_result("Inserted temperatures >= target", bounded)
        reached = (not synthesized) or synthesized[-1] == target
        print_result("Ramp reaches target", reached,
                     f"last={synthesized[-1]}" if synthesized else "target commanded directly")
        ok &= mono and bounded and reached

    # 5) CSV
    if args.csvfile:
        csv_path = Path(args.csvfile)
        if not csv_path.exists():
            print_result("CSV log exists", False, f"missing: {csv_path}")
            ok = False
        else:
            print_result("CSV log exists", True, str(csv_path))
            ok &= check_csv(csv_path)

    print()
    print("All checks passed." if ok else "Some checks FAILED.")
    raise SystemExit(0 if ok else 1)

if __name__ == "__main__":
    main()
