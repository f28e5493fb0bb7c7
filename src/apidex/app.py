"""Typer application and CLI entry point for apidex.

This module builds the root Typer application, registers the document
commands and the ``category`` and ``config`` sub-groups, and configures
output and logging from the global flags in :func:`main_callback`.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler, invokes the Typer app,
maps :class:`~apidex.exceptions.ApidexError` to its exit code, and writes
a crash log under the data directory for anything unexpected.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer

from apidex import __version__
from apidex.commands import documents
from apidex.commands.category import category_app
from apidex.commands.config import config_app
from apidex.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="apidex",
    help="Ingest OpenAPI documents from files or PDFs and index their endpoints.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command("import-spec")(documents.import_spec_command)
app.command("import-pdf")(documents.import_pdf_command)
app.command("generate")(documents.generate_command)
app.command("update")(documents.update_command)
app.command("edit")(documents.edit_command)
app.command("reindex")(documents.reindex_command)
app.command("endpoints")(documents.endpoints_command)
app.command("spec")(documents.spec_command)
app.command("status")(documents.status_command)
app.command("delete")(documents.delete_command)
app.command("providers")(documents.providers_command)
app.add_typer(category_app, name="category", help="Category management.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"apidex {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Also write log records to this file."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmations."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~apidex.output.OutputManager`, configures
    the ``apidex`` logger, and stores shared flags in ``ctx.obj``.
    """
    from apidex.logging_setup import setup_logging
    from apidex.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    setup_logging("DEBUG" if verbose else "WARNING", log_file)

    ctx.ensure_object(dict)
    ctx.obj["force"] = force
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log() -> str:
    """Write the current traceback to the data directory and return the file path."""
    from apidex.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``apidex`` console script.

    Unhandled :class:`~apidex.exceptions.ApidexError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from apidex.exceptions import ApidexError
        from apidex.output import get_output

        if isinstance(exc, ApidexError):
            get_output().error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log()
        get_output().error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
