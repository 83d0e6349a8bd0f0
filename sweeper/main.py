"""Sweeper entry point.

One sub-command per operation runs it over every issue and pull request of
a repository; ``batch`` runs a file of such commands, ``serve`` starts the
daemon and ``validate`` checks configuration files without contacting
GitHub. Usage: sweeper [global flags] <command> [args].
"""

import argparse
import logging
import shlex
import sys
from pathlib import Path
from typing import Any, Dict, List

from pydantic import ValidationError

from sweeper.actions import ensure_valid_actions, load_actions
from sweeper.adapters.base import GitPlatformError
from sweeper.adapters.github import make_client
from sweeper.config import AppConfig, LoggingConfig, RunConfig, load_config
from sweeper.errors import ConfigError, SweeperError
from sweeper.filters import parse_cli_filters
from sweeper.logging import LEVEL_NAMES, SweeperLogging
from sweeper.operations import OperationDescriptor, descriptors
from sweeper.runner import OperationRunner

LOG = logging.getLogger("sweeper.main")


class _BatchArgumentParser(argparse.ArgumentParser):
    """Parser for batch file lines: errors raise instead of exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise ConfigError(message)


def _add_operation_commands(subparsers: Any) -> None:
    for descriptor in descriptors():
        if not descriptor.cli_available:
            continue
        usage = f"%(prog)s [--filter EXPR] {descriptor.args_usage}" if descriptor.args_usage else None
        sub = subparsers.add_parser(descriptor.name, help=descriptor.description, usage=usage)
        sub.add_argument(
            "--filter",
            "-f",
            action="append",
            default=[],
            metavar="EXPR",
            help="filter items, e.g. is=pr, labels=bug, comments>5, age>6m (repeatable)",
        )
        descriptor.add_arguments(sub)
        sub.set_defaults(command="operation", descriptor=descriptor)


def build_parser() -> argparse.ArgumentParser:
    """Top-level parser: global flags plus every sub-command."""
    parser = argparse.ArgumentParser(
        prog="sweeper",
        description="Sweeper - bulk operations on GitHub issues and pull requests",
    )
    parser.add_argument("--config", "-c", type=Path, default=None, help="Path to YAML server config file")
    parser.add_argument("--repository", "-r", default=None, help="Target repository as owner/name")
    parser.add_argument("--token", default=None, help="GitHub token (prefer GITHUB_TOKEN)")
    parser.add_argument("--token-file", default=None, help="File holding the GitHub token")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Describe what would be done without changing anything",
    )
    parser.add_argument("--delay", type=float, default=None, help="Seconds to wait between listing pages")
    parser.add_argument(
        "--log-level",
        choices=LEVEL_NAMES,
        type=str.upper,
        default=None,
        help="Log level (overrides config and LOGGING_LEVEL)",
    )

    subparsers = parser.add_subparsers(dest="subcommand", metavar="COMMAND")
    subparsers.required = True
    _add_operation_commands(subparsers)

    batch = subparsers.add_parser("batch", help="Run operation commands listed in files, one per line")
    batch.add_argument("files", nargs="+", type=Path, metavar="FILE")
    batch.set_defaults(command="batch")

    serve = subparsers.add_parser("serve", help="Run the daemon (webhooks, spool queue and schedules)")
    serve.set_defaults(command="serve")

    validate = subparsers.add_parser("validate", help="Validate configuration files and exit")
    validate.add_argument("--server-config", type=Path, default=None, help="Server configuration to validate")
    validate.add_argument(
        "--repository-config",
        type=Path,
        default=None,
        help="Repository configuration (list of actions) to validate",
    )
    validate.set_defaults(command="validate")
    return parser


def build_batch_parser() -> argparse.ArgumentParser:
    parser = _BatchArgumentParser(prog="sweeper batch", add_help=False)
    subparsers = parser.add_subparsers(dest="subcommand", metavar="COMMAND")
    subparsers.required = True
    _add_operation_commands(subparsers)
    return parser


def build_run_config(app: AppConfig, args: argparse.Namespace) -> RunConfig:
    """Server config ``run`` section with the command-line flags applied."""
    overrides: Dict[str, Any] = {
        "repository": args.repository,
        "token": args.token,
        "token_file": args.token_file,
        "dry_run": args.dry_run,
        "delay": args.delay,
    }
    data = app.run.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return RunConfig(**data)
    except ValidationError as err:
        raise ConfigError(f"invalid run settings: {err}") from err


def build_runner(config: RunConfig, args: argparse.Namespace) -> OperationRunner:
    """Validate a sub-command and bind its operation and filters to a runner.

    Makes no GitHub call; every configuration error raises ConfigError.
    """
    descriptor: OperationDescriptor = args.descriptor
    try:
        operation = descriptor.from_cli(args)
    except ValueError as err:
        raise ConfigError(f"invalid arguments for {descriptor.name}: {err}") from err
    filters = parse_cli_filters(args.filter)
    config.split_repository()
    return OperationRunner(config, operation, filters)


def run_operation(config: RunConfig, args: argparse.Namespace) -> None:
    """Build the sub-command's operation and run it over the repository stock."""
    runner = build_runner(config, args)
    runner.client = make_client(config)
    LOG.debug("Running %r | repo=%s | dry_run=%s", runner, config.repository, config.dry_run)
    runner.handle_stock()


def read_batch_lines(path: Path) -> List[tuple]:
    """(line number, arguments) of every command line of a batch file."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigError(f"cannot read batch file {path}: {err}") from err
    lines = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        try:
            lines.append((lineno, shlex.split(line, comments=True)))
        except ValueError as err:
            raise ConfigError(f"{path}:{lineno}: {err}") from err
    return lines


def run_batch(config: RunConfig, files: List[Path]) -> None:
    """Run every line of every file in order.

    All lines are parsed and validated first: a bad line anywhere aborts
    before the first GitHub call. At run time the first failure aborts.
    """
    parser = build_batch_parser()
    planned = []
    for path in files:
        for lineno, argv in read_batch_lines(path):
            try:
                runner = build_runner(config, parser.parse_args(argv))
            except ConfigError as err:
                raise ConfigError(f"{path}:{lineno}: {err}") from err
            planned.append((path, lineno, argv, runner))

    client = make_client(config)
    for path, lineno, argv, runner in planned:
        LOG.info("Batch command | file=%s | line=%s | command=%s", path, lineno, " ".join(argv))
        runner.client = client
        try:
            runner.handle_stock()
        except (SweeperError, GitPlatformError):
            LOG.error("Batch command failed | file=%s | line=%s", path, lineno)
            raise


def validate_files(server_config: Path | None, repository_config: Path | None) -> None:
    if server_config is None and repository_config is None:
        raise ConfigError("nothing to validate (use --server-config and/or --repository-config)")
    if server_config is not None:
        app = load_config(server_config)
        ensure_valid_actions(list(app.common_configuration))
        print("Server config OK:", server_config, f"({len(app.repositories)} repositories)")
    if repository_config is not None:
        try:
            text = repository_config.read_text(encoding="utf-8")
        except OSError as err:
            raise ConfigError(f"cannot read {repository_config}: {err}") from err
        actions = ensure_valid_actions(load_actions(text))
        print("Repository config OK:", repository_config, f"({len(actions)} actions)")


def main(argv: List[str] | None = None) -> int:
    """Entry point for the sweeper command."""
    args = build_parser().parse_args(argv)
    SweeperLogging(LoggingConfig(), args.log_level).setup()

    try:
        if args.command == "validate":
            validate_files(args.server_config, args.repository_config)
            return 0

        app = load_config(args.config)
        SweeperLogging(app.logging, args.log_level).setup()

        if args.command == "serve":
            from sweeper.server.daemon import run_server

            run_server(app)
            return 0

        config = build_run_config(app, args)
        if args.command == "batch":
            run_batch(config, args.files)
        else:
            run_operation(config, args)
    except KeyboardInterrupt:
        return 0
    except (SweeperError, GitPlatformError) as e:
        LOG.error("%s", e)
        return 1
    except Exception as e:
        LOG.exception("Fatal error: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
