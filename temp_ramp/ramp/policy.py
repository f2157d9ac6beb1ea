# ramp/policy.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

@dataclass
class RampPolicy:
    step: int = 3                 # degrees dropped per quantum
    step_period_s: float = 10.0   # machine motion seconds per quantum
    block_size: int = 65536       # output block capacity (bytes)
    initial_feed: float = 600.0   # mm/min until the file sets F
    tool: Optional[int] = None    # force T<n> on synthesized lines
    suffix: str = ".tempmod"      # temporary output name suffix

    def __post_init__(self):
        if self.step <= 0:
            raise ValueError(f"step must be positive, got {self.step}")
        if self.step_period_s <= 0:
            raise ValueError(f"step_period_s must be positive, got {self.step_period_s}")
        if self.block_size <= 0:
            raise ValueError(f"block_size must be positive, got {self.block_size}")
        if not self.suffix:
            raise ValueError("suffix must not be empty")
