import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from wgpanel import interface
from wgpanel.errors import ExternalToolError
from wgpanel.interface import InterfaceController, InterfaceMonitor, run_command


class FakeRunner:
    def __init__(self, fail=None, output=""):
        self.calls = []
        self.fail = fail or {}
        self.output = output

    def __call__(self, cmd):
        self.calls.append(cmd)
        key = " ".join(cmd[:2])
        if key in self.fail:
            raise ExternalToolError(self.fail[key], command=cmd, returncode=1)
        return self.output


def _controller(tmp, runner):
    return InterfaceController("wg0", os.path.join(tmp, "wg0.conf"), runner=runner)


def test_start_and_stop():
    runner = FakeRunner()
    with tempfile.TemporaryDirectory() as tmp:
        c = _controller(tmp, runner)
        c.start()
        c.stop()
    assert runner.calls == [["wg-quick", "up", "wg0"], ["wg-quick", "down", "wg0"]]


def test_restart_writes_config_then_cycles():
    runner = FakeRunner()
    with tempfile.TemporaryDirectory() as tmp:
        c = _controller(tmp, runner)
        c.restart("[Interface]\n")
        assert Path(tmp, "wg0.conf").read_text() == "[Interface]\n"
    assert runner.calls == [["wg-quick", "down", "wg0"], ["wg-quick", "up", "wg0"]]


def test_restart_stop_failure_skips_start():
    runner = FakeRunner(fail={"wg-quick down": "not running"})
    with tempfile.TemporaryDirectory() as tmp:
        c = _controller(tmp, runner)
        with pytest.raises(ExternalToolError) as exc:
            c.restart("x\n")
    assert exc.value.stage == "stop"
    assert "Could not stop WireGuard" in exc.value.message
    assert ["wg-quick", "up", "wg0"] not in runner.calls
    assert len(runner.calls) == 1


def test_restart_start_failure_reported():
    runner = FakeRunner(fail={"wg-quick up": "bad config"})
    with tempfile.TemporaryDirectory() as tmp:
        c = _controller(tmp, runner)
        with pytest.raises(ExternalToolError) as exc:
            c.restart("x\n")
    assert exc.value.stage == "start"
    assert len(runner.calls) == 2


def test_reload_writes_config_and_reloads_unit():
    runner = FakeRunner()
    with tempfile.TemporaryDirectory() as tmp:
        c = _controller(tmp, runner)
        c.reload("fresh\n")
        assert Path(tmp, "wg0.conf").read_text() == "fresh\n"
    assert runner.calls == [["systemctl", "reload", "wg-quick@wg0"]]


def test_monitor_snapshot():
    runner = FakeRunner(output="P\tQ\t51820\toff\nkey=\t(none)\t(none)\t10.8.0.2/32\t0\t5\t6\toff\n")
    snap = InterfaceMonitor("wg0", runner=runner).snapshot()
    assert runner.calls == [["wg", "show", "wg0", "dump"]]
    assert snap["key="].received_bytes == 5


def test_run_command_launch_failure():
    with patch.object(interface.subprocess, "run", side_effect=FileNotFoundError("wg-quick")):
        with pytest.raises(ExternalToolError) as exc:
            run_command(["wg-quick", "up", "wg0"])
    assert exc.value.returncode is None


def test_run_command_nonzero_exit():
    class Result:
        returncode = 3
        stdout = ""
        stderr = "boom\n"

    with patch.object(interface.subprocess, "run", return_value=Result()):
        with pytest.raises(ExternalToolError) as exc:
            run_command(["wg-quick", "down", "wg0"])
    assert exc.value.returncode == 3
    assert exc.value.stderr == "boom"
