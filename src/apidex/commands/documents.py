"""Document commands -- import, update, reindex, and inspect specification documents.

Every command opens a :class:`~apidex.service.DocumentService` through
:func:`~apidex.commands.service_session`, so errors leave the process with
the exit code of their :class:`~apidex.exceptions.ApidexError` subclass.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from apidex.commands import service_session
from apidex.config import resolve_credential
from apidex.exceptions import ConfigurationError, InvalidUsageError
from apidex.models import Document, HTTPMethod, ProviderConfig, ProviderId, Settings
from apidex.output import get_output

logger = logging.getLogger(__name__)


def _document_record(document: Document) -> dict:
    return document.model_dump(mode="json", exclude={"spec_text"})


def _read_spec(path: Path) -> str:
    from apidex.parser.loader import read_spec_file

    return read_spec_file(path)


def _read_pdf(path: Path) -> bytes:
    from apidex.parser.loader import read_pdf_file

    return read_pdf_file(path)


def import_spec_command(
    file: Path = typer.Argument(help="OpenAPI JSON or YAML file."),
    name: str = typer.Option(..., "--name", help="Document display name."),
    slug: str = typer.Option(..., "--slug", help="Unique document slug."),
    version: str = typer.Option("1.0.0", "--api-version", help="Document version."),
    description: Optional[str] = typer.Option(None, "--description", help="Document description."),
    category: Optional[int] = typer.Option(None, "--category", help="Category id."),
) -> None:
    """Import a specification file and index its endpoints.

    An existing document with the same slug has its spec replaced.

    Example::

        apidex import-spec petstore.yaml --name Petstore --slug petstore
    """
    output = get_output()
    with service_session() as service:
        text = _read_spec(file)
        document = service.import_spec(name, slug, version, description, text, category)
        count = len(service.list_endpoints(document.id))
    output.success(f"Imported '{document.slug}' as document {document.id} ({count} endpoint(s))")
    output.print_record(_document_record(document))


def import_pdf_command(
    file: Path = typer.Argument(help="PDF describing the API."),
    provider: ProviderId = typer.Option(
        ..., "--provider", case_sensitive=False, help="LLM provider to use."
    ),
    name: str = typer.Option(..., "--name", help="Document display name."),
    slug: str = typer.Option(..., "--slug", help="Unique document slug."),
    version: str = typer.Option("1.0.0", "--api-version", help="Document version."),
    description: Optional[str] = typer.Option(None, "--description", help="Document description."),
    category: Optional[int] = typer.Option(None, "--category", help="Category id."),
) -> None:
    """Generate a spec from a PDF with an LLM provider, validate it, and import it.

    Example::

        apidex import-pdf contract.pdf --provider gemini --name Billing --slug billing
    """
    output = get_output()
    with service_session() as service:
        pdf_bytes = _read_pdf(file)
        output.info(f"Generating draft with {provider.value} ({len(pdf_bytes)} bytes)...")
        document = service.import_from_pdf(
            name, slug, version, description, category, pdf_bytes, provider
        )
        count = len(service.list_endpoints(document.id))
    output.success(f"Imported '{document.slug}' as document {document.id} ({count} endpoint(s))")
    output.print_record(_document_record(document))


def generate_command(
    file: Path = typer.Argument(help="PDF describing the API."),
    provider: ProviderId = typer.Option(
        ..., "--provider", case_sensitive=False, help="LLM provider to use."
    ),
    title: str = typer.Option("Untitled API", "--title", help="API title for the draft."),
    version: str = typer.Option("1.0.0", "--api-version", help="API version for the draft."),
    description: Optional[str] = typer.Option(None, "--description", help="API description."),
) -> None:
    """Print the provider's raw draft for review, without storing anything."""
    with service_session() as service:
        draft = service.generate_draft(_read_pdf(file), provider, title, version, description)
    get_output().print_data(draft)


def update_command(
    document_id: int = typer.Argument(help="Document id."),
    file: Path = typer.Argument(help="Replacement OpenAPI JSON or YAML file."),
) -> None:
    """Replace a document's spec and rebuild its endpoint index."""
    output = get_output()
    with service_session() as service:
        if not file.is_file():
            raise InvalidUsageError(f"Spec file not found: {file}")
        service.upload_spec(document_id, file.read_bytes())
        count = len(service.list_endpoints(document_id))
    output.success(f"Updated document {document_id} ({count} endpoint(s))")


def edit_command(
    document_id: int = typer.Argument(help="Document id."),
    name: Optional[str] = typer.Option(None, "--name", help="New display name."),
    slug: Optional[str] = typer.Option(None, "--slug", help="New unique slug."),
    version: Optional[str] = typer.Option(None, "--api-version", help="New version."),
    description: Optional[str] = typer.Option(None, "--description", help="New description."),
    category: Optional[int] = typer.Option(None, "--category", help="New category id."),
) -> None:
    """Change a document's metadata. The spec text and index are untouched."""
    with service_session() as service:
        document = service.update_meta(
            document_id,
            name=name,
            slug=slug,
            version=version,
            description=description,
            category_id=category,
        )
    get_output().print_record(_document_record(document))


def reindex_command(document_id: int = typer.Argument(help="Document id.")) -> None:
    """Rebuild a document's endpoint index from its stored spec."""
    with service_session() as service:
        count = service.reindex(document_id)
    get_output().success(f"Reindexed document {document_id}: {count} endpoint(s)")


def endpoints_command(
    document_id: int = typer.Argument(help="Document id."),
    method: Optional[HTTPMethod] = typer.Option(
        None, "--method", case_sensitive=False, help="Only this HTTP method."
    ),
) -> None:
    """List a document's indexed endpoints."""
    with service_session() as service:
        entries = service.list_endpoints(document_id, method)

    rows = [
        [
            entry.method.value.upper(),
            entry.path,
            entry.operation_id or "",
            entry.summary or "",
            ", ".join(entry.tags),
            "yes" if entry.deprecated else "",
        ]
        for entry in entries
    ]
    get_output().print_table(
        ["Method", "Path", "Operation ID", "Summary", "Tags", "Deprecated"],
        rows,
        title=f"Endpoints of document {document_id}",
    )


def spec_command(document_id: int = typer.Argument(help="Document id.")) -> None:
    """Print a document's stored spec text."""
    with service_session() as service:
        payload = service.get_spec_payload(document_id)
    output = get_output()
    output.debug(f"Content type: {payload.content_type}")
    output.print_spec(payload.raw, payload.content_type)


def status_command(
    document_id: int = typer.Argument(help="Document id."),
    status: str = typer.Argument(help="draft, published, or archived."),
) -> None:
    """Change a document's publication status."""
    with service_session() as service:
        document = service.update_status(document_id, status)
    get_output().success(f"Document {document_id} is now {document.status.value}")


def delete_command(
    ctx: typer.Context,
    document_id: int = typer.Argument(help="Document id."),
) -> None:
    """Delete a document and its endpoint index."""
    output = get_output()
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force and not typer.confirm(f"Delete document {document_id}?"):
        output.info("Cancelled.")
        raise typer.Exit()
    with service_session() as service:
        service.delete_document(document_id)
    output.success(f"Deleted document {document_id}")


def _credential_state(
    settings: Settings, provider_id: ProviderId
) -> tuple[ProviderConfig, str]:
    """Return the provider's settings and a short credential status.

    ``env:`` and ``file:`` references are resolved so that a dangling one
    shows as ``unresolved`` rather than as configured.
    """
    try:
        config = settings.provider(provider_id)
    except ConfigurationError as exc:
        logger.warning("%s", exc)
        return ProviderConfig(), "invalid"
    if not config.api_key:
        return config, "no"
    try:
        api_key = resolve_credential(config.api_key)
    except ConfigurationError as exc:
        logger.info("Credential for %s: %s", provider_id.value, exc)
        return config, "unresolved"
    return config, "yes" if api_key and api_key.strip() else "no"


def providers_command() -> None:
    """List registered LLM providers and whether each has a usable credential."""
    rows = []
    with service_session() as service:
        for provider_id in service.registry.providers():
            provider = service.registry.get(provider_id)
            config, credential = _credential_state(service.settings, provider_id)
            rows.append(
                [
                    provider_id.value,
                    config.model or provider.default_model,
                    config.api_url or provider.default_url,
                    credential,
                ]
            )
    output = get_output()
    output.print_table(["Provider", "Model", "URL", "Credential"], rows, title="Providers")
