from __future__ import annotations

import logging
from typing import List

from pixel.constants import A11Y_TOOL, REGRESSION_SERVICE, VISUAL_TOOL
from pixel.errors import BranchResolutionError, DiffsFoundError, ProcessError
from pixel.schemas import CommandOptions, GroupDefinition, ProcessOutcome, RunType
from pixel.services.artifacts import ReportStore
from pixel.services.branches import BranchResolver, describe
from pixel.services.compose import Compose, EnvironmentPreparer
from pixel.services.context import RunContextStore
from pixel.services.groups import GroupRegistry
from pixel.services.report import ReportAnnotator

LOGGER = logging.getLogger("pixel.executor")


def regression_command(run_type: RunType, group: GroupDefinition, opts: CommandOptions) -> List[str]:
    """Arguments for the visual-regression container."""
    tool = A11Y_TOOL if group.a11y else VISUAL_TOOL
    command = [tool, RunType(run_type).value, f"--config={group.config.config_file}"]
    if group.a11y and (opts.log_results or group.log_results):
        command.append("--logResults")
    return command


class TestExecutor:
    """Run one reference or test pass for one group."""

    __test__ = False

    def __init__(
        self,
        *,
        registry: GroupRegistry,
        resolver: BranchResolver,
        context: RunContextStore,
        preparer: EnvironmentPreparer,
        compose: Compose,
        store: ReportStore,
        annotator: ReportAnnotator,
    ) -> None:
        self._registry = registry
        self._resolver = resolver
        self._context = context
        self._preparer = preparer
        self._compose = compose
        self._store = store
        self._annotator = annotator

    def run(self, run_type: RunType, opts: CommandOptions, *, silent: bool = False) -> ProcessOutcome:
        """Execute a pass and classify its outcome.

        Differences found by the regression tool still produce an annotated
        report; interactive runs then raise ``DiffsFoundError``, silent runs
        return ``ProcessOutcome.diffs_found``. Other failures are re-raised
        unless ``silent``. The database reset requested by ``opts.reset_db``
        runs on every path.
        """
        run_type = RunType(run_type)
        opts.type = run_type
        group = self._registry.resolve(opts.group, opts.a11y)
        try:
            return self._execute(run_type, group, opts, silent)
        except DiffsFoundError:
            raise
        except ProcessError as exc:
            if exc.outcome is ProcessOutcome.interrupted:
                LOGGER.info("Run interrupted; exiting early")
                return ProcessOutcome.interrupted
            LOGGER.error("%s run for %s failed: %s %s", run_type.value, opts.group, exc, exc.stderr.strip())
            if silent:
                return ProcessOutcome.failed
            raise
        except BranchResolutionError as exc:
            LOGGER.error("%s run for %s failed: %s", run_type.value, opts.group, exc)
            if silent:
                return ProcessOutcome.failed
            raise
        finally:
            if opts.reset_db:
                self._compose.reset_db()

    def _execute(
        self,
        run_type: RunType,
        group: GroupDefinition,
        opts: CommandOptions,
        silent: bool,
    ) -> ProcessOutcome:
        key = group.config.id
        identifier = self._resolver.resolve(opts)
        self._context.update(key, run_type, identifier, describe(opts))
        self._preparer.with_flags(group.features).prepare(opts)

        if run_type is RunType.test:
            self._store.purge_test_bitmaps(group.config)

        report_file = self._store.report_file(group.config)
        try:
            self._compose.run(REGRESSION_SERVICE, regression_command(run_type, group, opts))
        except ProcessError as exc:
            if exc.outcome is not ProcessOutcome.diffs_found:
                raise
            LOGGER.warning("Differences found for %s", key)
            if run_type is RunType.test:
                self._annotator.annotate(run_type, key, report_file)
            if silent:
                return ProcessOutcome.diffs_found
            raise DiffsFoundError(exc.exit_code, exc.stderr, ProcessOutcome.diffs_found) from exc

        if run_type is RunType.test:
            self._annotator.annotate(run_type, key, report_file)
        return ProcessOutcome.success
