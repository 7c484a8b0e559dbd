from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pixel.errors import ProcessError
from pixel.schemas import ProcessResult
from pixel.services.artifacts import ReportStore
from pixel.services.report import ReportAnnotator


class StubRunner:
    """Record commands instead of spawning them.

    ``exit_codes`` maps a substring of the joined command line to the exit
    code that command should report; everything else exits 0.
    """

    def __init__(self, exit_codes: Optional[Dict[str, int]] = None, events: Optional[List[str]] = None) -> None:
        self.calls: List[List[str]] = []
        self.shell_calls: List[str] = []
        self.shell_output: Dict[str, str] = {}
        self.exit_codes = exit_codes or {}
        self.events = events if events is not None else []

    def _code_for(self, line: str) -> int:
        for needle, code in self.exit_codes.items():
            if needle in line:
                return code
        return 0

    def run(
        self,
        command: str,
        args: Sequence[str] = (),
        *,
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[str] = None,
        stream: bool = True,
    ) -> ProcessResult:
        argv = [command, *args]
        line = " ".join(argv)
        self.calls.append(argv)
        self.events.append(f"run:{line}")
        code = self._code_for(line)
        if code != 0:
            raise ProcessError(code, "stub failure")
        return ProcessResult(exit_code=0)

    def exec_shell(self, command_line: str) -> ProcessResult:
        self.shell_calls.append(command_line)
        for needle, output in self.shell_output.items():
            if needle in command_line:
                return ProcessResult(exit_code=0, stdout=output)
        return ProcessResult(exit_code=0)


class StubRefs:
    def __init__(self, heads: List[str], tags: Optional[List[str]] = None) -> None:
        self.heads = heads
        self.tags = tags or []
        self.calls: List[tuple] = []

    def list(self, url: str, pattern: str, tags: bool = False) -> List[str]:
        self.calls.append((url, pattern, tags))
        return list(self.tags if tags else self.heads)


class RecordingStore(ReportStore):
    def __init__(self, root: Path, events: List[str]) -> None:
        super().__init__(root)
        self.events = events

    def purge_test_bitmaps(self, config) -> None:
        self.events.append(f"purge:{config.paths.bitmaps_test}")
        super().purge_test_bitmaps(config)


class RecordingAnnotator(ReportAnnotator):
    def __init__(self, *args, events: List[str], **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.events = events
        self.annotated: List[tuple] = []

    def annotate(self, run_type, group, report_file):
        self.events.append(f"annotate:{group}")
        self.annotated.append((run_type, group, report_file))
        return super().annotate(run_type, group, report_file)


def write_report(path: Path, body: str = "<p>diffs</p>") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        f'<html><head></head><body><div id="root">{body}</div></body></html>',
        encoding="utf-8",
    )
    return path
