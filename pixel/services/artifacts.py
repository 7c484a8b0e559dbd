from __future__ import annotations

import logging
import shutil
from pathlib import Path

from pixel.constants import REPORT_INDEX, REPORT_ROOT
from pixel.schemas import ScenarioConfig

LOGGER = logging.getLogger("pixel.artifacts")


class ReportStore:
    """Resolve on-disk locations of screenshots and reports under the project directory."""

    def __init__(self, root: Path) -> None:
        self._root = root.resolve()

    def path(self, relative: str) -> Path:
        return self._root / relative

    def report_dir(self, config: ScenarioConfig) -> Path:
        return self.path(config.paths.html_report)

    def report_file(self, config: ScenarioConfig) -> Path:
        return self.report_dir(config) / REPORT_INDEX

    def index_file(self) -> Path:
        return self._root / REPORT_ROOT / REPORT_INDEX

    def relative(self, path: Path) -> str:
        return str(path.resolve().relative_to((self._root / REPORT_ROOT).resolve()))

    def purge_test_bitmaps(self, config: ScenarioConfig) -> None:
        """Remove screenshots left by the previous test run."""
        target = self.path(config.paths.bitmaps_test)
        if target.exists():
            LOGGER.debug("Removing stale test screenshots in %s", target)
            shutil.rmtree(target, ignore_errors=True)
