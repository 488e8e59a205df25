import pytest

from wphunter.core.context import ScanContext
from wphunter.core.detectors import Registry, default_registry, run_detectors
from wphunter.core.errors import ScanCancelled, UnknownDetectorError
from wphunter.models.detector_result import DetectorResult
from wphunter.modules.version import VersionDetector


def test_run_aggregates_results(ctx, fake_detector):
    detectors = [
        fake_detector("one", result=DetectorResult("https://example", "one", "info", "found")),
        fake_detector("two", error=RuntimeError("boom")),
    ]

    results = run_detectors(ctx, detectors, ["https://example"])

    assert len(results) == 2
    assert results[0].summary == "found"
    assert results[1].detector == "two"
    assert results[1].severity == "info"
    assert results[1].summary == "detector error: boom"


def test_failing_detector_yields_one_error_result_per_target(ctx, fake_detector):
    targets = ["https://a.test", "https://b.test", "https://c.test"]
    detectors = [
        fake_detector("ok"),
        fake_detector("broken", error=ValueError("nope")),
        fake_detector("also-ok"),
    ]

    results = run_detectors(ctx, detectors, targets)

    assert len(results) == len(targets) * len(detectors)
    errors = [r for r in results if r.summary.startswith("detector error:")]
    assert len(errors) == len(targets)
    assert {r.detector for r in errors} == {"broken"}


def test_results_follow_target_then_detector_order(ctx, fake_detector):
    detectors = [fake_detector("first"), fake_detector("second")]

    results = run_detectors(ctx, detectors, ["t1", "t2"])

    assert [(r.target, r.detector) for r in results] == [
        ("t1", "first"),
        ("t1", "second"),
        ("t2", "first"),
        ("t2", "second"),
    ]


def test_run_with_no_detectors_or_targets(ctx, fake_detector):
    assert run_detectors(ctx, [], ["t1"]) == []
    assert run_detectors(ctx, [fake_detector("one")], []) == []


def test_cancel_before_run_returns_nothing(fake_detector):
    ctx = ScanContext()
    ctx.cancel()
    detector = fake_detector("one")

    with pytest.raises(ScanCancelled) as excinfo:
        run_detectors(ctx, [detector], ["t1", "t2"])

    assert excinfo.value.results == []
    assert detector.calls == []


def test_cancel_mid_run_keeps_results_gathered_before(fake_detector):
    ctx = ScanContext()

    def cancel_on_second_target(ctx, target):
        if target == "t2":
            ctx.cancel()

    detectors = [fake_detector("one"), fake_detector("two", on_detect=cancel_on_second_target)]

    with pytest.raises(ScanCancelled) as excinfo:
        run_detectors(ctx, detectors, ["t1", "t2", "t3"])

    # t2/"two" was in flight when the cancel happened and is dropped.
    assert [(r.target, r.detector) for r in excinfo.value.results] == [
        ("t1", "one"),
        ("t1", "two"),
        ("t2", "one"),
    ]
    assert str(excinfo.value) == "context canceled"


def test_cancelled_detector_error_is_not_converted(fake_detector):
    ctx = ScanContext()

    def cancel(ctx, target):
        ctx.cancel()

    detectors = [fake_detector("one", error=ConnectionError("aborted"), on_detect=cancel)]

    with pytest.raises(ScanCancelled) as excinfo:
        run_detectors(ctx, detectors, ["t1"])

    assert excinfo.value.results == []


def test_expired_deadline_is_reported(fake_detector):
    ctx = ScanContext(timeout=0)

    with pytest.raises(ScanCancelled, match="deadline exceeded"):
        run_detectors(ctx, [fake_detector("one")], ["t1"])


# ------------------------------------------------
# REGISTRY
# ------------------------------------------------
def test_registry_builds_detectors(fake_detector):
    registry = Registry({"fake": lambda: fake_detector("fake")})

    detectors = registry.build_detectors(["fake"])

    assert len(detectors) == 1
    assert detectors[0].name == "fake"


def test_registry_collapses_duplicates_in_first_seen_order(fake_detector):
    built = []

    def factory(name):
        def build():
            built.append(name)
            return fake_detector(name)
        return build

    registry = Registry({"a": factory("a"), "b": factory("b")})

    detectors = registry.build_detectors(["b", "a", "b", "a"])

    assert [d.name for d in detectors] == ["b", "a"]
    assert built == ["b", "a"]


def test_registry_unknown_name_builds_nothing(fake_detector):
    built = []
    registry = Registry({"fake": lambda: built.append("fake") or fake_detector("fake")})

    with pytest.raises(UnknownDetectorError, match="unknown detector: missing"):
        registry.build_detectors(["fake", "missing"])

    assert built == []


def test_registry_empty_names():
    assert Registry({}).build_detectors([]) == []


def test_default_registries_are_independent():
    first = default_registry()
    second = default_registry()
    first.factories["extra"] = object

    assert "extra" not in second.factories
    assert isinstance(second.build_detectors(["version"])[0], VersionDetector)
