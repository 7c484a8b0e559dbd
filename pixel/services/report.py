from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pixel.constants import REPORT_MARKER
from pixel.errors import PixelError, ReportAnnotationError
from pixel.schemas import RunType
from pixel.services.context import RunContextStore
from pixel.services.process import ProcessRunner
from pixel.templating import templates

LOGGER = logging.getLogger("pixel.report")

_PREVIOUS_BANNER = re.compile(r"<!-- pixel-banner -->.*?<!-- /pixel-banner -->\n?", re.DOTALL)


def open_in_viewer(runner: ProcessRunner, path: Path) -> None:
    try:
        runner.run("open", [str(path)], stream=False)
    except (PixelError, OSError) as exc:
        LOGGER.warning("Could not open %s (%s); the report is located there", path, exc)


class ReportAnnotator:
    """Stamp generated reports with what was compared and when."""

    def __init__(
        self,
        context: RunContextStore,
        runner: ProcessRunner,
        *,
        non_interactive: bool = False,
    ) -> None:
        self._context = context
        self._runner = runner
        self._non_interactive = non_interactive

    def render_banner(self, group: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(tz=timezone.utc)
        entry = self._context.get(group)
        return templates.get_template("banner.html").render(
            group=group,
            reference=entry.reference if entry else None,
            description=entry.description if entry else "",
            test=entry.test if entry else None,
            generated_at=now,
            generated_ms=int(now.timestamp() * 1000),
        )

    def _inject(self, report_file: Path, group: str) -> None:
        try:
            html = report_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ReportAnnotationError(f"Cannot read report {report_file}: {exc}") from exc
        html = _PREVIOUS_BANNER.sub("", html)
        if REPORT_MARKER not in html:
            raise ReportAnnotationError(f"Marker {REPORT_MARKER!r} not found in {report_file}")
        banner = self.render_banner(group)
        html = html.replace(REPORT_MARKER, banner + REPORT_MARKER, 1)
        try:
            report_file.write_text(html, encoding="utf-8")
        except OSError as exc:
            raise ReportAnnotationError(f"Cannot write report {report_file}: {exc}") from exc

    def annotate(self, run_type: RunType, group: str, report_file: Path) -> bool:
        """Inject the banner and open the report. Returns whether the file was annotated."""
        if RunType(run_type) is RunType.reference:
            return False
        try:
            self._inject(report_file, group)
        except ReportAnnotationError as exc:
            LOGGER.error("Could not annotate report: %s", exc)
            return False
        LOGGER.info("Report located at %s", report_file)
        if not self._non_interactive:
            open_in_viewer(self._runner, report_file)
        return True
