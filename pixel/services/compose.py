from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from pixel.constants import (
    BASE_IMAGE_SCRIPT,
    COMPOSE_FILE,
    DATABASE_SERVICE,
    MEDIAWIKI_SERVICE,
    PURGE_PARSER_CACHE_SCRIPT,
    SEED_DB_SCRIPT,
    SETUP_SCRIPT,
)
from pixel.schemas import CommandOptions, FeatureFlags, ProcessResult
from pixel.services.process import ProcessRunner

LOGGER = logging.getLogger("pixel.compose")


class Compose:
    """Thin wrapper over ``docker compose`` for the project directory."""

    def __init__(self, runner: ProcessRunner, directory: Path, *, non_interactive: bool = False) -> None:
        self._runner = runner
        self._directory = directory
        self._non_interactive = non_interactive

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def runner(self) -> ProcessRunner:
        return self._runner

    def _args(self, args: Sequence[str]) -> List[str]:
        return [
            "compose",
            "--project-directory",
            str(self._directory),
            "-f",
            str(self._directory / COMPOSE_FILE),
            *args,
        ]

    def _tty_flag(self) -> List[str]:
        return ["-T"] if self._non_interactive else []

    def call(self, *args: str) -> ProcessResult:
        return self._runner.run("docker", self._args(args))

    def build(self, *services: str, pull: bool = False) -> ProcessResult:
        return self.call("build", *(["--pull"] if pull else []), *services)

    def up(self, *services: str) -> ProcessResult:
        return self.call("up", "-d", *services)

    def stop(self, *services: str) -> ProcessResult:
        return self.call("stop", *services)

    def down(self) -> ProcessResult:
        return self.call("down", "--rmi", "all", "--volumes", "--remove-orphans")

    def exec(self, service: str, command: Sequence[str], *, env: Optional[Dict[str, str]] = None) -> ProcessResult:
        env_args: List[str] = []
        for key, value in (env or {}).items():
            env_args.extend(["-e", f"{key}={value}"])
        # exec always runs without a TTY; output is captured for decisions.
        return self.call("exec", "-T", *env_args, service, *command)

    def run(self, service: str, command: Sequence[str]) -> ProcessResult:
        return self.call("run", "--rm", *self._tty_flag(), service, *command)

    def reset_db(self) -> None:
        """Restore the database from its physical backup.

        The server must be stopped before the backup is copied into place.
        """
        LOGGER.info("Resetting database")
        self.stop(DATABASE_SERVICE)
        self.call("run", "--rm", "--entrypoint", f'bash -c "{SEED_DB_SCRIPT}"', DATABASE_SERVICE)
        self.up(DATABASE_SERVICE)

    def purge_parser_cache(self) -> ProcessResult:
        return self.exec(MEDIAWIKI_SERVICE, [PURGE_PARSER_CACHE_SCRIPT])

    def clean(self) -> ProcessResult:
        return self.down()


class EnvironmentPreparer:
    """Bring the MediaWiki stack up for a run.

    Every step must succeed; errors propagate to the caller.
    """

    def __init__(self, compose: Compose, flags: Optional[FeatureFlags] = None) -> None:
        self._compose = compose
        self._flags = flags or FeatureFlags()

    def with_flags(self, flags: FeatureFlags) -> "EnvironmentPreparer":
        return EnvironmentPreparer(self._compose, flags)

    def prepare(self, opts: CommandOptions) -> None:
        runner = self._compose.runner
        directory = self._compose.directory
        LOGGER.info("Building base regression image")
        runner.run(BASE_IMAGE_SCRIPT, cwd=str(directory))
        LOGGER.info("Starting containers")
        self._compose.up()
        LOGGER.info("Checking out %s in %s", opts.branch, MEDIAWIKI_SERVICE)
        self._compose.exec(MEDIAWIKI_SERVICE, [SETUP_SCRIPT, opts.to_json()], env=self._flags.environment())
