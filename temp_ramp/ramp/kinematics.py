# ramp/kinematics.py
from __future__ import annotations
from dataclasses import dataclass
import math

from .gcode import Move

@dataclass
class MachineState:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    e: float = 0.0
    f: float = 600.0

    def step(self, move: Move) -> float:
        """
        Apply a move (modal: missing axes keep their value) and return its
        estimated duration in seconds:
          dt = |dP| / (F / 60)
        A feed rate <= 0 is treated as an instantaneous move; callers detect it
        with ``stalled(move)`` before stepping.
        """
        nx = self.x if move.x is None else move.x
        ny = self.y if move.y is None else move.y
        nz = self.z if move.z is None else move.z
        nf = self.f if move.f is None else move.f

        dist = math.sqrt((nx - self.x) ** 2 + (ny - self.y) ** 2 + (nz - self.z) ** 2)
        if dist == 0.0 or nf <= 0.0:
            dt = 0.0
        else:
            dt = dist / (nf / 60.0)

        self.x, self.y, self.z, self.f = nx, ny, nz, nf
        if move.e is not None:
            self.e = move.e
        return dt

    def stalled(self, move: Move) -> bool:
        """True when the move travels but its effective feed rate is not positive."""
        nf = self.f if move.f is None else move.f
        if nf > 0.0:
            return False
        return (
            (move.x is not None and move.x != self.x)
            or (move.y is not None and move.y != self.y)
            or (move.z is not None and move.z != self.z)
        )
