"""Category commands -- group documents under named categories."""

from __future__ import annotations

from typing import Optional

import typer

from apidex.commands import service_session
from apidex.output import get_output


category_app = typer.Typer(no_args_is_help=True)


@category_app.command("add")
def category_add(
    name: str = typer.Argument(help="Category display name."),
    slug: str = typer.Argument(help="Unique category slug."),
    sort_order: Optional[int] = typer.Option(None, "--sort-order", help="Position in listings."),
) -> None:
    """Create a category.

    Example::

        apidex category add Payments payments --sort-order 10
    """
    with service_session() as service:
        category = service.create_category(name, slug, sort_order)
    output = get_output()
    output.success(f"Created category '{category.slug}' ({category.id})")
    output.print_record(category.model_dump(mode="json"))
