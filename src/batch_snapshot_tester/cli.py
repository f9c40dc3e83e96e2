"""Command line interface entry point."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from batch_snapshot_tester.configuration import (
    DEFAULT_CONFIG_FILENAME,
    ConfigurationError,
    load_configuration,
    write_placeholder_configuration,
)
from batch_snapshot_tester.execution_engine import RunnableState, RunStats
from batch_snapshot_tester.run_execution import (
    RunExecutionError,
    RunnableEvent,
    RunOutcome,
    RunRequest,
    build_registry,
    execute_batch_run,
)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class CliError(Exception):
    """Custom CLI error."""


class ClickNotifier:
    """Notifier printing host notifications to the terminal."""

    def warn(self, message: str) -> None:
        click.secho(f"warning: {message}", fg="yellow", err=True)

    def error(self, message: str) -> None:
        click.secho(f"error: {message}", fg="red", err=True)

    def info(self, message: str) -> None:
        click.echo(message)


class ConsoleRunListener:
    """Streams suite and test status to the terminal while a run progresses."""

    def __init__(self) -> None:
        self._depth = 0

    def clear(self) -> None:
        self._depth = 0

    def handle_run_begin(self) -> None:
        click.echo("")

    def handle_suite_begin(self, suite: RunnableEvent) -> None:
        if suite.parent_id is None:
            return
        title = (suite.display_name or suite.batch_key) if suite.is_batch_root else suite.title
        click.secho(f"{self._indent()}{title}", bold=suite.is_batch_root)
        self._depth += 1

    def handle_suite_end(self, suite: RunnableEvent) -> None:
        if suite.parent_id is None:
            return
        self._depth = max(0, self._depth - 1)

    def handle_test_begin(self, test: RunnableEvent) -> None:
        return None

    def handle_test_end(self, test: RunnableEvent) -> None:
        if test.state == RunnableState.PENDING:
            click.secho(f"{self._indent()}- {test.title}", fg="cyan")
            return
        duration = f" ({test.duration_ms:.0f} ms)" if test.duration_ms is not None else ""
        click.secho(f"{self._indent()}ok {test.title}{duration}", fg="green")

    def handle_test_fail(self, test: RunnableEvent, error: BaseException) -> None:
        click.secho(f"{self._indent()}FAIL {test.title}: {error}", fg="red")

    def handle_batch_fail(self, hook: RunnableEvent, error: BaseException) -> None:
        click.secho(f"{self._indent()}BATCH FAILED {hook.title}: {error}", fg="red", bold=True)

    def handle_run_end(self, stats: RunStats) -> None:
        click.echo("")
        click.secho(f"{stats.passes} passing", fg="green")
        if stats.failures:
            click.secho(f"{stats.failures} failing", fg="red")
        if stats.pending:
            click.secho(f"{stats.pending} pending", fg="cyan")
        if stats.duration_ms is not None:
            click.echo(f"finished in {stats.duration_ms:.0f} ms")

    def _indent(self) -> str:
        return "  " * self._depth


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="batch-snapshot-tester")
def cli() -> None:
    """Deferred test batches with snapshot assertions."""


@cli.command(name="generate-config")
@click.option(
    "--output",
    "output_path",
    required=False,
    default=DEFAULT_CONFIG_FILENAME,
    show_default=True,
    type=click.Path(path_type=str),
    help="Path to the YAML configuration template to write",
)
def generate_config(output_path: str) -> None:
    """Generate a placeholder YAML configuration with guidance comments."""
    try:
        resolved_output = write_placeholder_configuration(output_path)
    except (FileExistsError, OSError) as exc:
        raise CliError(str(exc)) from exc
    click.echo(str(resolved_output))


@cli.command(name="list-batches")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(path_type=str),
    help="Path to YAML/JSON configuration file",
)
def list_batches(config_path: str) -> None:
    """List registered batches with their snapshot directories."""
    try:
        configuration = load_configuration(config_path)
        registry = build_registry(configuration, notifier=ClickNotifier())
    except (ConfigurationError, RunExecutionError) as exc:
        raise CliError(str(exc)) from exc
    if not len(registry):
        click.echo("No batches registered.")
        return
    for record in registry.records():
        selection = "pre-selected" if record.pre_selected else "optional"
        click.echo(
            f"{record.key}\t{record.display_name}\t{selection}\t{record.snapshot_directory}"
        )


@cli.command(name="run")
@click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(path_type=str),
    help="Path to YAML/JSON configuration file",
)
@click.option(
    "--batch",
    "batch_keys",
    multiple=True,
    help="Batch key to run; repeat to run several. Defaults to all batches.",
)
@click.option(
    "--update-snapshots/--no-update-snapshots",
    "update_snapshots",
    default=None,
    help="Write new and changed snapshots after the run. Defaults to snapshots.update.",
)
@click.option(
    "--pre-selected-only/--all-batches",
    "pre_selected_only",
    default=None,
    help="Run only batches registered as pre-selected. Defaults to run.pre_selected_only.",
)
@click.option(
    "--output-dir",
    "output_dir",
    required=False,
    type=click.Path(path_type=str),
    help="Optional directory for storing the results workbook",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def run_batches(  # pylint: disable=too-many-arguments
    config_path: str,
    batch_keys: tuple[str, ...],
    update_snapshots: bool | None,
    pre_selected_only: bool | None,
    output_dir: str | None,
    verbose: bool,
) -> None:
    """Run the selected batches and report their results."""
    _configure_logging(verbose)
    request = RunRequest(
        config_path=config_path,
        batch_keys=batch_keys,
        update_snapshots=update_snapshots,
        pre_selected_only=pre_selected_only,
        output_dir=output_dir,
    )
    try:
        outcome = asyncio.run(
            execute_batch_run(request, listener=ConsoleRunListener(), notifier=ClickNotifier())
        )
    except RunExecutionError as exc:
        raise CliError(str(exc)) from exc
    _echo_outcome(outcome)
    if outcome.failed:
        raise CliError(f"{outcome.stats.failures} test(s) failed.")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)


def _echo_outcome(outcome: RunOutcome) -> None:
    for entry in outcome.upload_report:
        if not entry.ok:
            click.secho(f"snapshot {entry.batch}/{entry.file}: {entry.status}", fg="yellow")
    if outcome.workbook_path is not None:
        click.echo(str(outcome.workbook_path))


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for console_scripts wiring."""
    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=list(argv), standalone_mode=False)
    except CliError as exc:
        click.echo(str(exc), err=True)
        return 1
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
