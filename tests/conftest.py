from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from pixel.services.branches import BranchResolver
from pixel.services.compose import Compose, EnvironmentPreparer
from pixel.services.context import RunContextStore
from pixel.services.executor import TestExecutor
from pixel.services.groups import GroupRegistry
from stubs import RecordingAnnotator, RecordingStore, StubRefs, StubRunner


@pytest.fixture
def events() -> List[str]:
    return []


@pytest.fixture
def make_executor(tmp_path: Path, events: List[str]) -> Callable[..., tuple]:
    def _factory(
        exit_codes: Optional[Dict[str, int]] = None,
        refs: Optional[StubRefs] = None,
        registry: Optional[GroupRegistry] = None,
    ):
        runner = StubRunner(exit_codes, events)
        compose = Compose(runner, tmp_path, non_interactive=True)
        context = RunContextStore(tmp_path / "context.json")
        store = RecordingStore(tmp_path, events)
        annotator = RecordingAnnotator(context, runner, non_interactive=True, events=events)
        executor = TestExecutor(
            registry=registry or GroupRegistry(),
            resolver=BranchResolver(runner, refs or StubRefs([])),
            context=context,
            preparer=EnvironmentPreparer(compose),
            compose=compose,
            store=store,
            annotator=annotator,
        )
        return executor, runner, context, store, annotator

    return _factory
