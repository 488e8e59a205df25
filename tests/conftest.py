import pytest

from wphunter.core.config import ENV_KEYS
from wphunter.core.context import ScanContext
from wphunter.models.detector_result import DetectorResult


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run every test from an empty directory with no wphunter env vars."""
    for aliases in ENV_KEYS.values():
        for name in aliases:
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def ctx():
    return ScanContext()


class FakeDetector:
    def __init__(self, name, result=None, error=None, on_detect=None):
        self.name = name
        self.result = result
        self.error = error
        self.on_detect = on_detect
        self.calls = []

    def detect(self, ctx, target):
        self.calls.append(target)
        if self.on_detect is not None:
            self.on_detect(ctx, target)
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        return DetectorResult(target=target, detector=self.name, severity="info", summary="ok")


class FakeRunner:
    def __init__(self, binary_present=True, fail_scan=None):
        self.binary_present = binary_present
        self.fail_scan = fail_scan
        self.scans = []
        self.updates = 0

    def ensure_binary(self):
        from wphunter.core.errors import ToolError

        if not self.binary_present:
            raise ToolError("wpprobe binary not found in PATH")
        return "/usr/local/bin/wpprobe"

    def scan(self, ctx, targets_file, mode, threads, output_path, stdout=None, stderr=None):
        with open(targets_file, "r", encoding="utf-8") as f:
            targets = f.read().splitlines()
        self.scans.append(
            {"targets": targets, "mode": mode, "threads": threads, "output_path": output_path}
        )
        if self.fail_scan is not None:
            raise self.fail_scan
        with open(output_path, "w", encoding="utf-8") as f:
            f.write("{}\n")

    def update(self, ctx, stdout=None, stderr=None):
        self.updates += 1


@pytest.fixture
def fake_detector():
    return FakeDetector


@pytest.fixture
def fake_runner():
    return FakeRunner
