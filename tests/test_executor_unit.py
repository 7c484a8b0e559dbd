from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from pixel.errors import DiffsFoundError, ProcessError, UnknownGroupError
from pixel.schemas import CommandOptions, ProcessOutcome, RunType
from stubs import StubRefs, write_report


def _index(events: List[str], needle: str) -> int:
    for position, event in enumerate(events):
        if needle in event:
            return position
    raise AssertionError(f"{needle!r} not found in {events}")


@pytest.mark.unit
def test_test_run_purges_runs_annotates_then_resets_db(make_executor, events: List[str], tmp_path: Path) -> None:
    executor, runner, context, store, annotator = make_executor()
    stale = tmp_path / "report" / "desktop" / "test" / "old.png"
    stale.parent.mkdir(parents=True)
    stale.write_bytes(b"png")

    outcome = executor.run(RunType.test, CommandOptions(group="desktop", reset_db=True))

    assert outcome is ProcessOutcome.success
    assert not stale.exists()
    regression_calls = [call for call in runner.calls if "visual-regression" in call]
    assert len(regression_calls) == 1
    assert regression_calls[0][-3:] == ["backstop", "test", "--config=configDesktop.js"]
    assert annotator.annotated and annotator.annotated[0][1] == "desktop"

    purge = _index(events, "purge:report/desktop/test")
    regression = _index(events, "visual-regression")
    annotate = _index(events, "annotate:desktop")
    stop_db = _index(events, "stop database")
    seed_db = _index(events, "seedDb.sh")
    start_db = _index(events, "up -d database")
    assert purge < regression < annotate < stop_db < seed_db < start_db


@pytest.mark.unit
def test_environment_is_prepared_in_order(make_executor, events: List[str]) -> None:
    executor, runner, *_ = make_executor()

    executor.run(RunType.reference, CommandOptions(group="mobile"))

    build = _index(events, "build-base-regression-image.sh")
    up = _index(events, "up -d")
    setup = _index(events, "/src/main.js")
    regression = _index(events, "visual-regression")
    assert build < up < setup < regression
    setup_call = next(call for call in runner.calls if "/src/main.js" in call)
    assert "ENABLE_WIKILAMBDA=0" in setup_call
    assert '"type":"reference"' in setup_call[-1]
    assert '"group":"mobile"' in setup_call[-1]


@pytest.mark.unit
def test_group_feature_flags_reach_setup_script(make_executor) -> None:
    executor, runner, *_ = make_executor()

    executor.run(RunType.reference, CommandOptions(group="wikilambda"))

    setup_call = next(call for call in runner.calls if "/src/main.js" in call)
    assert "ENABLE_WIKILAMBDA=1" in setup_call


@pytest.mark.unit
def test_reset_db_runs_even_when_regression_fails(make_executor, events: List[str]) -> None:
    executor, runner, *_ = make_executor(exit_codes={"visual-regression": 2})

    with pytest.raises(ProcessError) as excinfo:
        executor.run(RunType.test, CommandOptions(group="desktop", reset_db=True))

    assert excinfo.value.outcome is ProcessOutcome.failed
    assert _index(events, "visual-regression") < _index(events, "stop database") < _index(events, "up -d database")


@pytest.mark.unit
def test_failure_is_swallowed_in_silent_mode(make_executor) -> None:
    executor, _runner, _context, _store, annotator = make_executor(exit_codes={"visual-regression": 2})

    outcome = executor.run(RunType.test, CommandOptions(group="desktop"), silent=True)

    assert outcome is ProcessOutcome.failed
    assert annotator.annotated == []


@pytest.mark.unit
def test_diffs_found_in_silent_mode_still_annotates(make_executor, tmp_path: Path) -> None:
    executor, _runner, _context, _store, annotator = make_executor(exit_codes={"visual-regression": 1})
    report = write_report(tmp_path / "report" / "desktop" / "index.html")

    outcome = executor.run(RunType.test, CommandOptions(group="desktop"), silent=True)

    assert outcome is ProcessOutcome.diffs_found
    assert len(annotator.annotated) == 1
    assert "pixel-banner" in report.read_text(encoding="utf-8")


@pytest.mark.unit
def test_diffs_found_interactive_raises_after_annotating(make_executor) -> None:
    executor, _runner, _context, _store, annotator = make_executor(exit_codes={"visual-regression": 1})

    with pytest.raises(DiffsFoundError):
        executor.run(RunType.test, CommandOptions(group="desktop"))

    assert len(annotator.annotated) == 1


@pytest.mark.unit
def test_interrupt_is_a_clean_early_exit(make_executor) -> None:
    executor, _runner, _context, _store, annotator = make_executor(exit_codes={"visual-regression": 130})

    outcome = executor.run(RunType.test, CommandOptions(group="desktop"))

    assert outcome is ProcessOutcome.interrupted
    assert annotator.annotated == []


@pytest.mark.unit
def test_setup_script_exit_one_is_not_treated_as_diffs(make_executor) -> None:
    executor, _runner, _context, _store, annotator = make_executor(exit_codes={"/src/main.js": 1})

    with pytest.raises(ProcessError) as excinfo:
        executor.run(RunType.test, CommandOptions(group="desktop"))

    assert not isinstance(excinfo.value, DiffsFoundError)
    assert annotator.annotated == []


@pytest.mark.unit
def test_reference_run_never_writes_report(make_executor, tmp_path: Path) -> None:
    executor, _runner, _context, _store, annotator = make_executor()
    report = write_report(tmp_path / "report" / "desktop" / "index.html")
    before = report.read_text(encoding="utf-8")

    outcome = executor.run(RunType.reference, CommandOptions(group="desktop"))

    assert outcome is ProcessOutcome.success
    assert annotator.annotated == []
    assert report.read_text(encoding="utf-8") == before


@pytest.mark.unit
def test_unknown_group_fails_without_subprocesses(make_executor) -> None:
    executor, runner, *_ = make_executor()

    with pytest.raises(UnknownGroupError):
        executor.run(RunType.test, CommandOptions(group="nope", reset_db=True))

    assert runner.calls == []
    assert runner.shell_calls == []


@pytest.mark.unit
def test_a11y_group_runs_audit_tool(make_executor) -> None:
    executor, runner, *_ = make_executor()

    executor.run(RunType.test, CommandOptions(group="mobile", a11y=True))

    regression_call = next(call for call in runner.calls if "visual-regression" in call)
    assert regression_call[-4:] == ["a11y", "test", "--config=configMobileA11y.js", "--logResults"]


@pytest.mark.unit
def test_run_context_records_both_passes(make_executor) -> None:
    refs = StubRefs(["refs/heads/wmf/2.0", "refs/heads/wmf/1.9"], tags=["refs/tags/v1.0.0"])
    executor, _runner, context, *_ = make_executor(refs=refs)

    executor.run(RunType.reference, CommandOptions(group="desktop", branch="latest-release"))
    executor.run(RunType.test, CommandOptions(group="desktop", change_id=["I1234"]))

    entry = context.get("desktop")
    assert entry is not None
    assert entry.reference == "origin/wmf/2.0"
    assert entry.test == "I1234"
    assert entry.description == " (with custom branches: design/codex:v1.0.0)"
