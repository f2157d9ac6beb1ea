import pytest


def gcode(text: str):
    """Turn a text block into the raw line list the planner consumes."""
    return [ln.strip().encode("ascii") for ln in text.strip().splitlines()]


class RecordingLogger:
    """Stands in for RunLogger and keeps events in memory."""

    def __init__(self):
        self.events = []
        self.moves = []

    def log_event(self, line, t_s, kind, temp=None, message=""):
        self.events.append((line, round(t_s, 6), kind, temp))

    def log_move(self, line, t_s, temp):
        self.moves.append((line, round(t_s, 6), temp))

    def kinds(self):
        return [e[2] for e in self.events]


@pytest.fixture
def recording_logger():
    return RecordingLogger()


# preamble 210, target 200, five 10 s moves at F3000 (500 mm each),
# each followed by an M104 S200 that should pass through untouched
EXAMPLE = """
M104 S210
G1 X0 Y0 F3000
M108
M104 S200
G1 X500 F3000
M104 S200
G1 X0
M104 S200
G1 X500
M104 S200
G1 X0
M104 S200
G1 X500
M104 S200
"""


@pytest.fixture
def example_lines():
    return gcode(EXAMPLE)
