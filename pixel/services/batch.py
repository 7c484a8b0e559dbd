from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pixel.schemas import CommandOptions, ProcessOutcome, RunType
from pixel.services.artifacts import ReportStore
from pixel.services.executor import TestExecutor
from pixel.services.groups import A11Y_SUFFIX, GroupRegistry
from pixel.services.process import ProcessRunner
from pixel.services.report import open_in_viewer
from pixel.templating import templates

LOGGER = logging.getLogger("pixel.batch")


@dataclass
class GroupResult:
    key: str
    title: str
    href: str
    outcome: Optional[ProcessOutcome] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.outcome is ProcessOutcome.success

    @property
    def status(self) -> str:
        if self.error is not None:
            return "error"
        return self.outcome.value if self.outcome else "skipped"


class BatchDriver:
    """Run reference and test passes for every group up to a priority."""

    def __init__(
        self,
        executor: TestExecutor,
        registry: GroupRegistry,
        store: ReportStore,
        runner: ProcessRunner,
        *,
        non_interactive: bool = False,
    ) -> None:
        self._executor = executor
        self._registry = registry
        self._store = store
        self._runner = runner
        self._non_interactive = non_interactive

    def run_all(self, opts: CommandOptions) -> List[GroupResult]:
        results: List[GroupResult] = []
        selected = [(key, group) for key, group in self._registry.all_groups() if group.priority <= opts.priority]
        LOGGER.info("Running %d group(s) with priority <= %d", len(selected), opts.priority)
        for key, group in selected:
            name = key[: -len(A11Y_SUFFIX)] if group.a11y and key.endswith(A11Y_SUFFIX) else key
            result = GroupResult(
                key=key,
                title=group.name or key,
                href=self._store.relative(self._store.report_file(group.config)),
            )
            group_opts = opts.model_copy(update={"group": name, "a11y": group.a11y}, deep=True)
            try:
                self._executor.run(RunType.reference, group_opts, silent=True)
                result.outcome = self._executor.run(RunType.test, group_opts, silent=True)
            except Exception as exc:
                LOGGER.exception("Group %s failed; continuing with the next group", key)
                result.error = str(exc)
            results.append(result)

        index = self.write_index(results, opts.priority)
        LOGGER.info("Combined report located at %s", index)
        if not self._non_interactive:
            open_in_viewer(self._runner, index)
        return results

    def write_index(self, results: List[GroupResult], priority: int) -> Path:
        html = templates.get_template("index.html").render(
            results=results,
            priority=priority,
            generated_at=datetime.now(tz=timezone.utc),
        )
        index = self._store.index_file()
        index.parent.mkdir(parents=True, exist_ok=True)
        index.write_text(html, encoding="utf-8")
        return index
