import subprocess

import pytest

from wphunter.core.context import ScanContext
from wphunter.core.errors import ScanCancelled, ToolError
from wphunter.core.probe import ProbeRunner


class FakeProcess:
    def __init__(self, returncode=0, hang=False, interrupt=None):
        self.returncode = returncode
        self.hang = hang
        self.interrupt = interrupt
        self.terminated = False
        self.killed = False

    def wait(self, timeout=None):
        if self.interrupt is not None and not self.terminated:
            raise self.interrupt
        if self.hang and not self.terminated:
            raise subprocess.TimeoutExpired("wpprobe", timeout)
        return self.returncode if not self.terminated else -15

    def terminate(self):
        self.terminated = True

    def kill(self):
        self.killed = True


class FakePopen:
    def __init__(self, process):
        self.process = process
        self.calls = []

    def __call__(self, args, stdout=None, stderr=None):
        self.calls.append({"args": args, "stdout": stdout, "stderr": stderr})
        return self.process


def make_runner(process=None, present=True):
    popen = FakePopen(process or FakeProcess())
    runner = ProbeRunner(
        which=lambda name: f"/usr/bin/{name}" if present else None,
        popen=popen,
    )
    return runner, popen


def test_ensure_binary_when_present():
    runner, _ = make_runner()
    assert runner.ensure_binary() == "/usr/bin/wpprobe"


def test_ensure_binary_when_missing():
    runner, _ = make_runner(present=False)

    with pytest.raises(ToolError, match="wpprobe binary not found"):
        runner.ensure_binary()


def test_scan_constructs_command_and_forwards_streams():
    runner, popen = make_runner()
    out, err = object(), object()

    runner.scan(ScanContext(), "/tmp/targets.txt", "stealthy", 8, "/tmp/out/scan.json", stdout=out, stderr=err)

    call = popen.calls[0]
    assert call["args"] == [
        "wpprobe", "scan",
        "-f", "/tmp/targets.txt",
        "--mode", "stealthy",
        "-o", "/tmp/out/scan.json",
        "-t", "8",
    ]
    assert call["stdout"] is out
    assert call["stderr"] is err


def test_scan_non_zero_exit_raises():
    runner, _ = make_runner(FakeProcess(returncode=2))

    with pytest.raises(ToolError, match="exited with status 2"):
        runner.scan(ScanContext(), "t.txt", "hybrid", 10, "out.json")


def test_scan_with_cancelled_context_never_starts():
    runner, popen = make_runner()
    ctx = ScanContext()
    ctx.cancel()

    with pytest.raises(ScanCancelled):
        runner.scan(ctx, "t.txt", "hybrid", 10, "out.json")

    assert popen.calls == []


def test_scan_terminates_child_on_deadline(monkeypatch):
    monkeypatch.setattr("wphunter.core.probe.POLL_INTERVAL", 0.01)
    process = FakeProcess(hang=True)
    runner, _ = make_runner(process)
    ctx = ScanContext(timeout=0.05)

    with pytest.raises(ScanCancelled, match="deadline exceeded"):
        runner.scan(ctx, "t.txt", "hybrid", 10, "out.json")

    assert process.terminated


def test_missing_executable_at_spawn_time():
    def popen(args, stdout=None, stderr=None):
        raise FileNotFoundError(2, "No such file or directory", args[0])

    runner = ProbeRunner(which=lambda name: None, popen=popen)

    with pytest.raises(ToolError):
        runner.scan(ScanContext(), "t.txt", "hybrid", 10, "out.json")


def test_update_runs_command():
    runner, popen = make_runner()

    runner.update(ScanContext())

    assert popen.calls[0]["args"] == ["wpprobe", "update"]


def test_update_failure_raises():
    runner, _ = make_runner(FakeProcess(returncode=1))

    with pytest.raises(ToolError, match="wpprobe update exited with status 1"):
        runner.update(ScanContext())


@pytest.mark.parametrize("interrupt", [KeyboardInterrupt(), SystemExit(130)])
def test_interrupt_while_waiting_stops_child(interrupt):
    process = FakeProcess(interrupt=interrupt)
    runner, _ = make_runner(process)

    with pytest.raises(type(interrupt)):
        runner.scan(ScanContext(), "t.txt", "hybrid", 10, "out.json")

    assert process.terminated


def test_child_is_killed_when_terminate_is_ignored(monkeypatch):
    class StubbornProcess(FakeProcess):
        def wait(self, timeout=None):
            if not self.killed:
                raise subprocess.TimeoutExpired("wpprobe", timeout)
            return -9

    monkeypatch.setattr("wphunter.core.probe.POLL_INTERVAL", 0.01)
    process = StubbornProcess()
    runner, _ = make_runner(process)

    with pytest.raises(ScanCancelled):
        runner.scan(ScanContext(timeout=0.05), "t.txt", "hybrid", 10, "out.json")

    assert process.terminated
    assert process.killed


class Completed:
    def __init__(self, returncode=0, stdout=""):
        self.returncode = returncode
        self.stdout = stdout


def test_version_is_bounded_by_context_deadline(monkeypatch):
    calls = []

    def fake_run(args, **kwargs):
        calls.append((args, kwargs["timeout"]))
        return Completed(stdout="wpprobe v0.7.2\n")

    monkeypatch.setattr("wphunter.core.probe.subprocess.run", fake_run)
    runner, _ = make_runner()

    assert runner.version(ScanContext(timeout=1)) == "wpprobe v0.7.2"
    assert calls[0][0] == ["wpprobe", "--version"]
    assert 0 < calls[0][1] <= 1


def test_help_check_uses_default_timeout_without_deadline(monkeypatch):
    calls = []

    def fake_run(args, **kwargs):
        calls.append(kwargs["timeout"])
        return Completed(returncode=2)

    monkeypatch.setattr("wphunter.core.probe.subprocess.run", fake_run)
    runner, _ = make_runner()

    with pytest.raises(ToolError, match="--help exited with status 2"):
        runner.check_help(ScanContext())

    assert calls == [3]


def test_help_check_skipped_when_context_is_done(monkeypatch):
    monkeypatch.setattr("wphunter.core.probe.subprocess.run", lambda *a, **k: pytest.fail("ran"))
    runner, _ = make_runner()
    ctx = ScanContext()
    ctx.cancel()

    with pytest.raises(ScanCancelled):
        runner.check_help(ctx)
