from __future__ import annotations

import logging
import subprocess
import sys
import threading
from typing import IO, Dict, List, Optional, Sequence

from pixel.errors import ProcessError
from pixel.schemas import ProcessOutcome, ProcessResult

LOGGER = logging.getLogger("pixel.process")


def _pump(source: Optional[IO[str]], sink: Optional[IO[str]], lines: List[str]) -> None:
    if source is None:
        return
    try:
        for line in iter(source.readline, ""):
            lines.append(line)
            if sink is None:
                continue
            try:
                sink.write(line)
                sink.flush()
            except (OSError, UnicodeError) as exc:
                # Keep draining the pipe so the child never sees a broken pipe.
                LOGGER.debug("Stopped echoing child output: %s", exc)
                sink = None
    finally:
        source.close()


class ProcessRunner:
    """Run external commands one (or ``concurrency``) at a time.

    Docker Compose invocations share container state, so callers get
    backpressure instead of parallelism: extra calls block until a slot frees.
    """

    def __init__(self, concurrency: int = 1) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._slots = threading.BoundedSemaphore(concurrency)

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
        LOGGER.debug("Spawning %s", " ".join(argv))
        with self._slots:
            proc = subprocess.Popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                env=env,
                cwd=cwd,
            )
            out_lines: List[str] = []
            err_lines: List[str] = []
            pumps = [
                threading.Thread(
                    target=_pump,
                    args=(proc.stdout, sys.stdout if stream else None, out_lines),
                    daemon=True,
                ),
                threading.Thread(
                    target=_pump,
                    args=(proc.stderr, sys.stderr if stream else None, err_lines),
                    daemon=True,
                ),
            ]
            for pump in pumps:
                pump.start()
            try:
                code = proc.wait()
            except KeyboardInterrupt:
                # The child shares our process group and received the same SIGINT.
                proc.wait()
                code = 130
            for pump in pumps:
                pump.join()

        result = ProcessResult(exit_code=code, stdout="".join(out_lines), stderr="".join(err_lines))
        if code != 0:
            LOGGER.debug("%s exited with %s (%s)", command, code, result.outcome.value)
            raise ProcessError(code, result.stderr, result.outcome)
        return result

    def exec_shell(self, command_line: str) -> ProcessResult:
        LOGGER.debug("Executing shell command: %s", command_line)
        with self._slots:
            try:
                proc = subprocess.run(
                    command_line,
                    shell=True,
                    capture_output=True,
                    encoding="utf-8",
                    errors="replace",
                    check=False,
                )
                code = proc.returncode
                stdout, stderr = proc.stdout or "", proc.stderr or ""
            except KeyboardInterrupt:
                code, stdout, stderr = 130, "", ""
        if code != 0:
            raise ProcessError(code, stderr.strip(), ProcessOutcome.from_exit_code(code))
        return ProcessResult(exit_code=code, stdout=stdout, stderr=stderr)
