"""Built-in CLI sub-commands.

The command functions are registered on the root Typer app at import time
of :mod:`apidex.app`.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

import typer

from apidex.exceptions import ApidexError
from apidex.output import get_output

if TYPE_CHECKING:
    from apidex.service import DocumentService


@contextmanager
def service_session() -> Iterator[DocumentService]:
    """Open a :class:`~apidex.service.DocumentService` for one command.

    Settings are loaded with their usual precedence, the store is closed on
    exit, and any :class:`~apidex.exceptions.ApidexError` is printed and
    turned into ``typer.Exit`` with the error's exit code.
    """
    from apidex.config import load_settings
    from apidex.service import DocumentService

    service = None
    try:
        service = DocumentService.from_settings(load_settings())
        yield service
    except ApidexError as exc:
        get_output().error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    finally:
        if service is not None:
            service.store.close()
