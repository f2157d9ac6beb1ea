#!/usr/bin/env python3
"""Plot commanded hotend temperature against machine motion time from a temp-ramp CSV run log."""
import argparse
from pathlib import Path

import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

def load_steps(csv_path: Path) -> pd.DataFrame:
    df = pd.read_csv(csv_path)
    df["t_s"] = pd.to_numeric(df["t_s"], errors="coerce")
    df["temp_c"] = pd.to_numeric(df["temp_c"], errors="coerce")
    return df.dropna(subset=["t_s", "temp_c"])

def event_temp(df: pd.DataFrame, kind: str):
    rows = df.loc[df["type"] == kind, "temp_c"]
    return None if rows.empty else float(rows.iloc[0])

def main():
    ap = argparse.ArgumentParser(description="Plot a temp-ramp run log.")
    ap.add_argument("--csv", dest="csvfile", default="ramp_log.csv", help="CSV run log from temp-ramp --csv")
    ap.add_argument("--out-dir", default=str(Path("results") / "figures"), help="Figure output directory")
    args = ap.parse_args()

    csv_path = Path(args.csvfile)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV log not found: {csv_path}")
    fig_dir = Path(args.out_dir)
    fig_dir.mkdir(parents=True, exist_ok=True)

    df = load_steps(csv_path)
    ramp = df[df["type"].isin(["STEP", "MOVE"])]
    if ramp.empty:
        raise SystemExit("No ramp events in log (was there a target temperature after the marker?)")

    preamble = event_temp(df, "PREAMBLE")
    target = event_temp(df, "TARGET")

    plt.figure()
    plt.step(ramp["t_s"].values, ramp["temp_c"].values, where="post", label="commanded temp")
    if preamble is not None:
        plt.axhline(preamble, linestyle="--", label="preamble temp")
    if target is not None:
        plt.axhline(target, linestyle="--", color="tab:red", label="target temp")
    plt.xlabel("Machine motion time since target (s)")
    plt.ylabel("Hotend temperature (°C)")
    plt.title("Post-first-layer temperature ramp")
    plt.legend()
    plt.tight_layout()
    plt.savefig(fig_dir / "temp_ramp.pdf", bbox_inches="tight")
    plt.savefig(fig_dir / "temp_ramp.png", dpi=300, bbox_inches="tight")
    plt.close()

    print(f"Saved {fig_dir}/temp_ramp.pdf and {fig_dir}/temp_ramp.png")

if __name__ == "__main__":
    main()
