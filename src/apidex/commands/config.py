"""Config commands -- view and modify the settings file.

Provides the ``apidex config`` sub-command group. Values shown by
``config show`` are the effective settings after environment overrides,
with credentials masked.
"""

from __future__ import annotations

import typer

from apidex.exceptions import ApidexError
from apidex.output import get_output


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration.

    Example::

        apidex config show
        apidex --json config show
    """
    from apidex.config import config_path, load_settings, masked_settings

    output = get_output()
    try:
        settings = load_settings()
    except ApidexError as exc:
        output.error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    output.info(f"Config file: {config_path()}")
    output.print_record(masked_settings(settings))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g. 'gemini.api_key')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Credentials may be given literally or as ``env:VAR`` / ``file:PATH``
    references, which are resolved only when that provider is used.

    Example::

        apidex config set db_path ~/apis.db
        apidex config set openai.api_key env:OPENAI_API_KEY
        apidex config set request_timeout 300
    """
    from apidex.config import set_config_value

    output = get_output()
    try:
        set_config_value(key, value)
    except ApidexError as exc:
        output.error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    shown = "****" if key.endswith(".api_key") else value
    output.success(f"Set {key} = {shown}")
