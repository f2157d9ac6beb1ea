"""Line source, atomic rewrite and end-to-end file tests."""
import io

import pytest

from temp_ramp.ramp import files
from temp_ramp.ramp.files import atomic_rewrite, iter_lines, read_lines, rewrite_file, temp_path_for
from temp_ramp.ramp.planner import Phase
from temp_ramp.ramp.policy import RampPolicy

EXAMPLE_LF = (
    b"; generated by slicer\n"
    b"M104 S210\n"
    b"G1 X0 Y0 F3000\n"
    b"M108\n"
    b"M104 S200 ; steady\n"
    b"G1 X500 E5.0\n"
    b"G1 X0 E10.0\n"
    b"G1 X500 E15.0\n"
    b"G1 X0 E20.0\n"
)

EXPECTED_CRLF = (
    b"; generated by slicer\r\n"
    b"M104 S210\r\n"
    b"G1 X0 Y0 F3000\r\n"
    b"M108\r\n"
    b"M104 S207\r\n"
    b"G1 X500 E5.0\r\n"
    b"M104 S204\r\n"
    b"G1 X0 E10.0\r\n"
    b"M104 S201\r\n"
    b"G1 X500 E15.0\r\n"
    b"M104 S200\r\n"
    b"G1 X0 E20.0\r\n"
)


def test_iter_lines_strips_lf_and_crlf():
    stream = io.BytesIO(b"a\nb\r\n\nc")
    assert list(iter_lines(stream)) == [b"a", b"b", b"", b"c"]


def test_iter_lines_keeps_interior_carriage_returns():
    assert list(iter_lines(io.BytesIO(b"a\rb\n"))) == [b"a\rb"]


def test_iter_lines_empty_stream():
    assert list(iter_lines(io.BytesIO(b""))) == []


def test_read_lines(tmp_path):
    p = tmp_path / "in.gcode"
    p.write_bytes(b"G28\r\nM104 S200\r\n")
    assert list(read_lines(p)) == [b"G28", b"M104 S200"]


def test_temp_path_for(tmp_path):
    assert temp_path_for(tmp_path / "part.gcode") == tmp_path / "part.gcode.tempmod"
    assert temp_path_for(tmp_path / "part.gcode", ".tmp") == tmp_path / "part.gcode.tmp"


def test_rewrite_file_in_place(tmp_path):
    p = tmp_path / "part.gcode"
    p.write_bytes(EXAMPLE_LF)

    result = rewrite_file(p)

    assert p.read_bytes() == EXPECTED_CRLF
    assert not temp_path_for(p).exists()
    assert result.summary.phase is Phase.COMPLETE
    assert result.summary.lines_in == 9
    assert result.summary.lines_out == 12
    assert result.bytes_written == len(EXPECTED_CRLF)
    assert result.blocks_written == 1


def test_rewrite_file_normalizes_crlf_input(tmp_path):
    p = tmp_path / "part.gcode"
    p.write_bytes(EXAMPLE_LF.replace(b"\n", b"\r\n"))
    rewrite_file(p)
    assert p.read_bytes() == EXPECTED_CRLF


def test_rewrite_file_small_blocks(tmp_path):
    p = tmp_path / "part.gcode"
    p.write_bytes(EXAMPLE_LF)
    result = rewrite_file(p, RampPolicy(block_size=16))
    assert p.read_bytes() == EXPECTED_CRLF
    assert result.blocks_written > 1


def test_rewrite_file_custom_suffix(tmp_path):
    p = tmp_path / "part.gcode"
    p.write_bytes(EXAMPLE_LF)
    rewrite_file(p, RampPolicy(suffix=".ramping"))
    assert p.read_bytes() == EXPECTED_CRLF
    assert sorted(x.name for x in tmp_path.iterdir()) == ["part.gcode"]


def test_rewrite_file_without_target_only_normalizes_endings(tmp_path):
    p = tmp_path / "part.gcode"
    p.write_bytes(b"M104 S210\nM108\nG1 X500 F3000\n")
    result = rewrite_file(p)
    assert p.read_bytes() == b"M104 S210\r\nM108\r\nG1 X500 F3000\r\n"
    assert result.summary.phase is Phase.AWAITING_TARGET


def test_rewrite_empty_file(tmp_path):
    p = tmp_path / "empty.gcode"
    p.write_bytes(b"")
    result = rewrite_file(p)
    assert p.read_bytes() == b""
    assert result.blocks_written == 0


def test_missing_input_raises_and_leaves_no_temp(tmp_path):
    p = tmp_path / "missing.gcode"
    with pytest.raises(FileNotFoundError):
        rewrite_file(p)
    assert list(tmp_path.iterdir()) == []


def test_atomic_rewrite_commits_on_success(tmp_path):
    p = tmp_path / "f.gcode"
    p.write_bytes(b"old")
    with atomic_rewrite(p) as f:
        f.write(b"new")
        assert p.read_bytes() == b"old"
    assert p.read_bytes() == b"new"
    assert not temp_path_for(p).exists()


@pytest.mark.parametrize("exc", [OSError("disk full"), KeyboardInterrupt()])
def test_atomic_rewrite_failure_leaves_original(tmp_path, exc):
    p = tmp_path / "f.gcode"
    p.write_bytes(b"old")
    with pytest.raises(type(exc)):
        with atomic_rewrite(p) as f:
            f.write(b"partial")
            raise exc
    assert p.read_bytes() == b"old"
    assert not temp_path_for(p).exists()


def test_write_failure_mid_pass_leaves_original(tmp_path, monkeypatch):
    p = tmp_path / "part.gcode"
    p.write_bytes(EXAMPLE_LF)

    class FailingWriter(files.BlockWriter):
        def write(self, data):
            if self.bytes_written or len(self) > 20:
                raise OSError("no space left on device")
            super().write(data)

    monkeypatch.setattr(files, "BlockWriter", FailingWriter)
    with pytest.raises(OSError):
        rewrite_file(p, RampPolicy(block_size=8))

    assert p.read_bytes() == EXAMPLE_LF
    assert not temp_path_for(p).exists()


def test_run_logger_receives_events(tmp_path, recording_logger):
    p = tmp_path / "part.gcode"
    p.write_bytes(EXAMPLE_LF)
    rewrite_file(p, run_logger=recording_logger)
    assert recording_logger.kinds()[0] == "PREAMBLE"
    assert recording_logger.kinds()[-1] == "COMPLETE"
