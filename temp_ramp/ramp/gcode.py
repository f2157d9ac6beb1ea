# ramp/gcode.py
"""
Line classifier for the temperature ramp.

Only three instruction classes matter to the ramp: linear moves, hotend
temperature sets and the print-start marker. Everything else is ``Other`` and
is copied through untouched. Classification works on a decoded copy of the
code part of a line; the caller keeps the original bytes for output.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union
import math
import re

MOVE_OPCODES = frozenset({"G0", "G1"})
TEMP_OPCODE = "M104"
MARKER_OPCODE = "M108"
COMMENT_BYTE = b";"
EOL = b"\r\n"

_OPCODE_RE = re.compile(r"^([A-Z])(\d+)$")
_AXES = "XYZEF"

@dataclass
class Move:
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None
    e: Optional[float] = None
    f: Optional[float] = None

    def has_position(self) -> bool:
        return self.x is not None or self.y is not None or self.z is not None

@dataclass
class TemperatureSet:
    value: int
    tool: Optional[int] = None

@dataclass
class LayerChangeMarker:
    pass

@dataclass
class Other:
    # set when the opcode was recognized but its parameters were not
    reason: str = ""

Instruction = Union[Move, TemperatureSet, LayerChangeMarker, Other]

def split_comment(raw: bytes) -> Tuple[bytes, bytes]:
    """Split a raw line into (code, comment). The comment keeps its ';'."""
    idx = raw.find(COMMENT_BYTE)
    if idx < 0:
        return raw, b""
    return raw[:idx], raw[idx:]

def tokenize(raw: bytes) -> List[str]:
    code, _ = split_comment(raw)
    return code.decode("ascii", errors="replace").split()

def normalize_opcode(token: str) -> str:
    """``g01`` -> ``G1``. Tokens that are not letter+digits come back upper-cased."""
    tok = token.upper()
    m = _OPCODE_RE.match(tok)
    if not m:
        return tok
    return f"{m.group(1)}{int(m.group(2))}"

def parse_number(text: str) -> Optional[float]:
    """Finite float or None. Rejects ``nan``/``inf`` and python-only spellings."""
    if not text or "_" in text:
        return None
    try:
        v = float(text)
    except ValueError:
        return None
    if not math.isfinite(v):
        return None
    return v

def _parse_words(tokens: List[str]) -> Tuple[Dict[str, float], Optional[str]]:
    words: Dict[str, float] = {}
    for t in tokens:
        k = t[0].upper()
        v = parse_number(t[1:])
        if v is None:
            return words, f"bad parameter {t!r}"
        words[k] = v
    return words, None

def _classify_move(params: List[str]) -> Instruction:
    words, err = _parse_words([t for t in params if t[0].upper() in _AXES])
    if err:
        return Other(reason=f"move: {err}")
    return Move(
        x=words.get("X"),
        y=words.get("Y"),
        z=words.get("Z"),
        e=words.get("E"),
        f=words.get("F"),
    )

def _classify_temperature(params: List[str]) -> Instruction:
    value: Optional[int] = None
    tool: Optional[int] = None
    for t in params:
        k = t[0].upper()
        if k == "S":
            v = parse_number(t[1:])
            if v is None or v < 0:
                return Other(reason=f"temperature: bad parameter {t!r}")
            value = int(v)
        elif k == "T":
            if not t[1:].isdigit():
                return Other(reason=f"temperature: bad tool {t!r}")
            tool = int(t[1:])
    if value is None:
        return Other(reason="temperature: missing S parameter")
    return TemperatureSet(value=value, tool=tool)

def classify(raw: bytes) -> Instruction:
    """Classify one raw line (no trailing newline)."""
    tokens = tokenize(raw)
    if not tokens:
        return Other()

    op = normalize_opcode(tokens[0])
    params = tokens[1:]
    if op in MOVE_OPCODES:
        return _classify_move(params)
    if op == TEMP_OPCODE:
        return _classify_temperature(params)
    if op == MARKER_OPCODE:
        return LayerChangeMarker()
    return Other()

def render_temperature(temp: int, tool: Optional[int] = None) -> bytes:
    parts = [TEMP_OPCODE, f"S{temp}"]
    if tool is not None:
        parts.append(f"T{tool}")
    return " ".join(parts).encode("ascii")
