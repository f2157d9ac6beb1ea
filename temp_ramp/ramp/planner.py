# ramp/planner.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional
import math

from .gcode import LayerChangeMarker, Move, Other, TemperatureSet, classify, render_temperature
from .kinematics import MachineState
from .policy import RampPolicy

class Phase(Enum):
    PREAMBLE = "preamble"
    AWAITING_TARGET = "awaiting_target"
    RAMPING = "ramping"
    COMPLETE = "complete"

@dataclass
class RampState:
    in_preamble: bool = True
    preamble_temp: Optional[int] = None
    target_temp: Optional[int] = None
    current_temp: Optional[int] = None
    elapsed_s: float = 0.0
    last_step_index: int = -1
    complete: bool = False

    @property
    def phase(self) -> Phase:
        if self.complete:
            return Phase.COMPLETE
        if self.in_preamble:
            return Phase.PREAMBLE
        if self.target_temp is None:
            return Phase.AWAITING_TARGET
        return Phase.RAMPING

@dataclass
class RampSummary:
    phase: Phase
    lines_in: int
    lines_out: int
    preamble_temp: Optional[int]
    target_temp: Optional[int]
    final_temp: Optional[int]
    steps: int
    elapsed_s: float
    malformed_lines: int
    zero_feed_moves: int

class RampPlanner:
    """
    Streaming temperature ramp: feed raw lines in file order, get output lines back.

    The first M104 before the M108 marker is the preamble temperature; the
    first M104 after it is the target. That target line is replaced by the
    first ramp step, and every ``step_period_s`` of accumulated move time
    after it another M104 is inserted, ``step`` degrees lower, until the
    target is reached. From then on lines are echoed as-is.
    """
    def __init__(self, policy: Optional[RampPolicy] = None, run_logger=None):
        self.policy = policy or RampPolicy()
        self.machine = MachineState(f=self.policy.initial_feed)
        self.state = RampState()
        self.run_logger = run_logger
        self.changes: List[str] = []

        self.line_no = 0
        self.lines_out = 0
        self.steps = 0
        self.malformed_lines = 0
        self.zero_feed_moves = 0
        self._tool: Optional[int] = None

    @property
    def phase(self) -> Phase:
        return self.state.phase

    def process(self, lines: Iterable[bytes]) -> Iterator[bytes]:
        for raw in lines:
            yield from self.feed(raw)

    def feed(self, raw: bytes) -> List[bytes]:
        self.line_no += 1
        out = self._dispatch(raw)
        self.lines_out += len(out)
        return out

    def _dispatch(self, raw: bytes) -> List[bytes]:
        if self.state.complete:
            return [raw]

        ins = classify(raw)
        if isinstance(ins, Move):
            return self._on_move(raw, ins)
        if isinstance(ins, TemperatureSet):
            return self._on_temperature(raw, ins)
        if isinstance(ins, LayerChangeMarker):
            self._on_marker()
        elif isinstance(ins, Other) and ins.reason:
            self.malformed_lines += 1
            self._event("WARN", message=f"passed through: {ins.reason}")
        return [raw]

    def summary(self) -> RampSummary:
        st = self.state
        return RampSummary(
            phase=st.phase,
            lines_in=self.line_no,
            lines_out=self.lines_out,
            preamble_temp=st.preamble_temp,
            target_temp=st.target_temp,
            final_temp=st.current_temp,
            steps=self.steps,
            elapsed_s=st.elapsed_s,
            malformed_lines=self.malformed_lines,
            zero_feed_moves=self.zero_feed_moves,
        )

    # ---- transitions

    def _on_marker(self) -> None:
        st = self.state
        if not st.in_preamble:
            return
        st.in_preamble = False
        self._event("MARKER", st.current_temp, "preamble ends")
        self.changes.append(f"Line {self.line_no}: marker ends preamble.")

    def _on_temperature(self, raw: bytes, ins: TemperatureSet) -> List[bytes]:
        st = self.state
        if st.in_preamble:
            if st.preamble_temp is None:
                st.preamble_temp = ins.value
                st.current_temp = ins.value
                self._event("PREAMBLE", ins.value, "preamble temperature")
            return [raw]

        if st.target_temp is not None:
            return [raw]

        st.target_temp = ins.value
        if st.current_temp is None:
            # no preamble temperature: nothing to ramp from
            st.current_temp = ins.value
        self._tool = self.policy.tool if self.policy.tool is not None else ins.tool
        self._event("TARGET", ins.value, "target temperature")

        self._take_step(0)
        if st.current_temp == ins.value:
            # one step already lands on the target; the line commands it as written
            self.changes.append(f"Line {self.line_no}: target {ins.value} reached without ramp.")
            return [raw]

        repl = render_temperature(st.current_temp, self._tool)
        self.changes.append(
            f"Line {self.line_no}: target {ins.value} captured, replaced with {repl.decode('ascii')}."
        )
        return [repl]

    def _on_move(self, raw: bytes, move: Move) -> List[bytes]:
        st = self.state
        ramping = st.target_temp is not None
        if ramping and self.machine.stalled(move):
            self.zero_feed_moves += 1
            self._event("WARN", st.current_temp, "feed rate <= 0, move counted as instantaneous")

        dt = self.machine.step(move)
        if not ramping:
            return [raw]

        st.elapsed_s += dt
        if self.run_logger is not None:
            self.run_logger.log_move(self.line_no, st.elapsed_s, st.current_temp)

        index = int(math.floor(st.elapsed_s / self.policy.step_period_s))
        if index <= st.last_step_index:
            return [raw]

        self._take_step(index)
        line = render_temperature(st.current_temp, self._tool)
        self.changes.append(
            f"Line {self.line_no}: inserted {line.decode('ascii')} at t={st.elapsed_s:.1f}s."
        )
        return [raw, line]

    def _take_step(self, index: int) -> None:
        st = self.state
        candidate = st.current_temp - self.policy.step
        if candidate < st.target_temp:
            candidate = st.target_temp
        st.current_temp = candidate
        st.last_step_index = index
        self.steps += 1
        self._event("STEP", candidate, f"quantum {index}")

        if candidate == st.target_temp:
            st.complete = True
            self._event("COMPLETE", candidate, "ramp complete")
            self.changes.append(f"Line {self.line_no}: ramp complete at {candidate}.")

    def _event(self, kind: str, temp: Optional[int] = None, message: str = "") -> None:
        if self.run_logger is None:
            return
        self.run_logger.log_event(self.line_no, self.state.elapsed_s, kind, temp, message)
