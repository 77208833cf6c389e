"""Command-line entry point."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING

import click
import structlog
from pydantic import ValidationError

from pacgrade.check import run_check
from pacgrade.config import Settings
from pacgrade.errors import PacgradeError
from pacgrade.notify import format_notification, notification_sink

if TYPE_CHECKING:
    from pacgrade.config import LoggingSettings
    from pacgrade.models.result import ReconciliationResult

CONTEXT_SETTINGS = dict(help_option_names=["-h", "--help"])


def setup_logging(settings: LoggingSettings) -> None:
    """Route structlog output to stderr so stdout carries only the report."""
    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.level)
        ),
        # resolve sys.stderr per logger so redirected streams are honoured
        logger_factory=lambda *args: structlog.PrintLogger(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def render_report(result: ReconciliationResult, verbose: bool) -> None:
    for pkg in result.details:
        click.echo(f"{pkg.name}: {pkg.local_version} -> {pkg.remote_version} ({pkg.source})")
    if verbose and result.unresolved:
        click.echo(f"Not found in any repository: {', '.join(sorted(result.unresolved))}")
    if result.registry_failed:
        click.echo("Warning: the AUR could not be queried, results may be incomplete", err=True)
    click.echo(f"Found {result.outdated_count} packages that are out of date")


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option("--no-notify", is_flag=True, help="Do not show a desktop notification.")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.option("-v", "--verbose", is_flag=True, help="Also list packages nobody could resolve.")
@click.version_option(package_name="pacgrade")
def cli(no_notify: bool, log_level: str | None, verbose: bool) -> None:
    """Check whether installed packages are out of date."""
    try:
        settings = Settings()
    except ValidationError as exc:
        raise click.ClickException(f"Invalid configuration:\n{exc}") from exc
    if log_level is not None:
        settings.logging.level = log_level.upper()  # type: ignore[assignment]
    setup_logging(settings.logging)

    with notification_sink(settings.notify.enabled and not no_notify) as sink:
        try:
            result = asyncio.run(run_check(settings))
        except PacgradeError as exc:
            raise click.ClickException(exc.message) from exc

        render_report(result, verbose)
        if result.outdated_count > 0:
            sink.show(*format_notification(result.outdated_count))


def main() -> None:
    cli()
