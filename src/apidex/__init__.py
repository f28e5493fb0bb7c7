"""apidex -- ingest OpenAPI documents and index their endpoints.

Specifications arrive either as raw JSON/YAML text or as a PDF that an LLM
provider (OpenAI, OpenRouter, or Gemini) turns into a draft. Every spec is
normalized, validated, and stored in SQLite together with a flat index of
its operations that is rebuilt atomically on each write.

Typical workflow::

    apidex config set gemini.api_key env:GEMINI_API_KEY
    apidex import-pdf contract.pdf --provider gemini --name Billing --slug billing
    apidex endpoints 1 --method get

Modules:
    app: Typer application and CLI entry point.
    service: Document orchestration over parser, providers, and index.
    normalizer: Repairs common defects in LLM-produced spec text.
    parser: Spec loading, ``$ref`` resolution, validation, extraction.
    providers: LLM provider strategies and their registry.
    index: SQLite document store and endpoint indexer.
    config: XDG-aware settings with environment overrides.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
