# ramp/logger.py
from __future__ import annotations
import csv
import os
from dataclasses import dataclass
from typing import Optional

COLUMNS = ["line", "t_s", "type", "temp_c", "message"]

@dataclass
class LogConfig:
    out_dir: str
    csv_name: str
    log_moves: bool = False

class RunLogger:
    """CSV event log of one ramp pass. ``t_s`` is machine motion time, not wall time."""

    def __init__(self, cfg: LogConfig):
        if cfg.out_dir:
            os.makedirs(cfg.out_dir, exist_ok=True)
        self.path = os.path.join(cfg.out_dir, cfg.csv_name)
        self.cfg = cfg
        self.rows = 0
        self._f = open(self.path, "w", newline="", encoding="utf-8")
        self._w = csv.writer(self._f)
        self._w.writerow(COLUMNS)
        self._f.flush()

    def log_event(self, line: int, t_s: float, kind: str,
                  temp: Optional[int] = None, message: str = ""):
        self._w.writerow([line, f"{t_s:.3f}", kind, "" if temp is None else temp, message])
        self._f.flush()
        self.rows += 1

    def log_move(self, line: int, t_s: float, temp: Optional[int]):
        if not self.cfg.log_moves:
            return
        self.log_event(line, t_s, "MOVE", temp)

    def close(self):
        self._f.close()

    def __enter__(self) -> "RunLogger":
        return self

    def __exit__(self, *exc):
        self.close()
