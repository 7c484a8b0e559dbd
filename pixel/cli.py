import argparse
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional

from pydantic import ValidationError

from pixel.config import Settings
from pixel.constants import LATEST_RELEASE_BRANCH, MAIN_BRANCH
from pixel.errors import DiffsFoundError, PixelError, ProcessError
from pixel.logging_config import setup_logging
from pixel.schemas import CommandOptions, RunType
from pixel.services.artifacts import ReportStore
from pixel.services.batch import BatchDriver
from pixel.services.branches import BranchResolver
from pixel.services.compose import Compose, EnvironmentPreparer
from pixel.services.context import RunContextStore
from pixel.services.executor import TestExecutor
from pixel.services.groups import GroupRegistry
from pixel.services.process import ProcessRunner
from pixel.services.report import ReportAnnotator

LOGGER = logging.getLogger("pixel.cli")


@dataclass
class Services:
    settings: Settings
    runner: ProcessRunner
    registry: GroupRegistry
    compose: Compose
    context: RunContextStore
    store: ReportStore
    resolver: BranchResolver
    preparer: EnvironmentPreparer
    executor: TestExecutor
    batch: BatchDriver


def build_services(settings: Settings, runner: Optional[ProcessRunner] = None) -> Services:
    runner = runner or ProcessRunner()
    registry = GroupRegistry()
    compose = Compose(runner, settings.directory, non_interactive=settings.non_interactive)
    context = RunContextStore(settings.context_file)
    store = ReportStore(settings.directory)
    resolver = BranchResolver(runner)
    preparer = EnvironmentPreparer(compose)
    annotator = ReportAnnotator(context, runner, non_interactive=settings.non_interactive)
    executor = TestExecutor(
        registry=registry,
        resolver=resolver,
        context=context,
        preparer=preparer,
        compose=compose,
        store=store,
        annotator=annotator,
    )
    batch = BatchDriver(executor, registry, store, runner, non_interactive=settings.non_interactive)
    return Services(settings, runner, registry, compose, context, store, resolver, preparer, executor, batch)


def _options(args) -> CommandOptions:
    return CommandOptions(
        branch=args.branch,
        change_id=args.change_id or [],
        repo_branch=args.repo_branch or [],
        group=args.group,
        reset_db=args.reset_db,
        a11y=args.a11y,
        log_results=args.log_results,
        priority=args.priority,
        directory=str(args.services.settings.directory),
    )


def _run_pass(args) -> int:
    services: Services = args.services
    services.executor.run(RunType(args.cmd), _options(args))
    return 0


def _run_all(args) -> int:
    services: Services = args.services
    results = services.batch.run_all(_options(args))
    failed = [result.key for result in results if result.error is not None]
    if failed:
        LOGGER.warning("Groups with errors: %s", ", ".join(failed))
    return 0


def _update(args) -> int:
    services: Services = args.services
    opts = _options(args)
    group = services.registry.resolve(opts.group, opts.a11y)
    services.resolver.resolve(opts)
    services.compose.build(pull=True)
    services.preparer.with_flags(group.features).prepare(opts)
    services.compose.purge_parser_cache()
    return 0


def _reset_db(args) -> int:
    args.services.compose.reset_db()
    return 0


def _stop(args) -> int:
    args.services.compose.stop()
    return 0


def _clean(args) -> int:
    args.services.compose.clean()
    return 0


def _add_run_options(parser: argparse.ArgumentParser, groups: List[str]) -> None:
    parser.add_argument(
        "-b",
        "--branch",
        default=MAIN_BRANCH,
        help=(
            f'Name of branch. Can be "{MAIN_BRANCH}" or a release branch (e.g. "origin/wmf/1.39.0-wmf.10"). '
            f'Use "{LATEST_RELEASE_BRANCH}" to use the latest wmf release branch.'
        ),
    )
    parser.add_argument(
        "-c",
        "--change-id",
        action="append",
        metavar="CHANGE_ID",
        help="Change-Id to apply. Repeat the flag to use several Change-Ids.",
    )
    parser.add_argument(
        "--repo-branch",
        action="append",
        metavar="REPO:BRANCH",
        help="Check out a custom branch of a repository (e.g. mediawiki/skins/Vector:my-branch). Repeatable.",
    )
    parser.add_argument("-g", "--group", default="desktop", choices=groups, help="The group of tests to run.")
    parser.add_argument("-a", "--a11y", action="store_true", help="Run the accessibility audit instead.")
    parser.add_argument(
        "-l", "--logResults", dest="log_results", action="store_true", help="Log accessibility results."
    )
    parser.add_argument(
        "--reset-db",
        action="store_true",
        help="Reset the database after the run. This destroys all data currently in the database.",
    )
    parser.add_argument("-p", "--priority", type=int, default=1, help="Highest group priority to run.")
    parser.add_argument("-d", "--directory", default=None, help="Project directory with docker-compose.yml.")


def build_parser(registry: Optional[GroupRegistry] = None) -> argparse.ArgumentParser:
    registry = registry or GroupRegistry()
    groups = sorted(set(registry.names()) | set(registry.names(a11y=True)))

    p = argparse.ArgumentParser(prog="pixel", description="Visual regression testing for MediaWiki")
    subs = p.add_subparsers(dest="cmd", required=True)

    reference = subs.add_parser(
        "reference", help="Create reference (baseline) screenshots and delete the old reference screenshots."
    )
    _add_run_options(reference, groups)
    reference.set_defaults(func=_run_pass)

    test = subs.add_parser(
        "test", help="Create test screenshots and compare them against the reference screenshots."
    )
    _add_run_options(test, groups)
    test.set_defaults(func=_run_pass)

    run_all = subs.add_parser("runAll", help="Run reference and test passes for every group up to a priority.")
    _add_run_options(run_all, groups)
    run_all.set_defaults(func=_run_all)

    update = subs.add_parser("update", help="Check out the given branches and purge the parser cache.")
    _add_run_options(update, groups)
    update.set_defaults(func=_update)

    for name, func, text in (
        ("reset-db", _reset_db, "Destroys all data in the database and resets it."),
        ("stop", _stop, "Stops all Docker containers associated with Pixel."),
        (
            "clean",
            _clean,
            "Removes all containers, images, networks, and volumes associated with Pixel "
            "so that it can start with a clean slate.",
        ),
    ):
        sub = subs.add_parser(name, help=text)
        sub.add_argument("-d", "--directory", default=None, help="Project directory with docker-compose.yml.")
        sub.set_defaults(func=func)

    return p


def main(argv: Optional[List[str]] = None, runner: Optional[ProcessRunner] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env(args.directory)
    setup_logging(settings.log_level)
    try:
        args.services = build_services(settings, runner)
        return args.func(args)
    except ValidationError as exc:
        LOGGER.error("Invalid options: %s", exc)
        return 1
    except DiffsFoundError:
        LOGGER.error("Differences found; see the report for details")
        return 1
    except ProcessError as exc:
        LOGGER.error("%s: %s", exc, exc.stderr.strip())
        return 1
    except PixelError as exc:
        LOGGER.error("%s", exc)
        return 1
    except OSError as exc:
        LOGGER.error("Could not run command: %s", exc)
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
