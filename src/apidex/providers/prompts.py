"""Instruction prompts sent to providers along with the PDF.

Every prompt states the same output contract: a single OpenAPI 3.0.3 JSON
object, no prose and no code fences, every name taken verbatim from the
document with its original casing.  :func:`build_pdf_prompt` is the full
prompt used by providers that receive the PDF as a separate part;
:func:`build_inline_prompt` is the short form used when the base64 PDF is
pasted into the prompt text itself.
"""

from __future__ import annotations

from typing import Optional

_PDF_CONTRACT = """\
You are a senior API architect and meticulous OpenAPI author.

TASK

* Read the provided PDF specification and OUTPUT ONLY a valid OpenAPI 3.0.3 JSON object.
* No markdown, no code fences, no comments, no prose. JSON only.

NON-ALTERATION GUARANTEE

* DO NOT rename, translate, reformat, or invent any API names, section headings, operationIds,
  schema/field names, parameter names, tag names, enum values, or error codes. Use exactly the
  original names, spelling, casing, and language from the PDF.
* Preserve the original casing style (camelCase, snake_case, UPPER_SNAKE, etc.) exactly as in
  the PDF for every identifier.
* If the PDF repeats a section (e.g. the same security scheme or component twice), MERGE by
  exact name; DO NOT create duplicates or alternate names.

MUST-HAVES (in this order)

* openapi (must be "3.0.3")
* info { title, version, description } using the metadata below verbatim
* servers (deduce base URLs from the PDF; include every named environment)
* tags (group operations exactly as the PDF groups and names them)
* components { securitySchemes, schemas, parameters, requestBodies, responses }, each derived
  only from the PDF, with field names exactly as in the PDF
* security (top-level only if the PDF specifies a default requirement)
* paths (every operation with its method, parameters, requestBody, and responses)

STRICT OUTPUT RULES

* Keys in "paths" MUST start with a forward slash like "/api/files"; NEVER emit escaped
  unicode (do NOT emit "u002f").
* Media types MUST be valid IANA types (e.g. "application/json", "multipart/form-data").
  NEVER emit "applicationu002fjson".
* File uploads: requestBody.content["multipart/form-data"].schema.properties.file =
  {"type":"string","format":"binary"}.
* Binary downloads: responses["200"].content["application/octet-stream"].schema =
  {"type":"string","format":"binary"}.
* Parameter locations are "path", "query", "header", or "cookie". Path params MUST be
  required:true and appear in the path template.
* Use response codes exactly as in the PDF.
* Include "example" values only when the PDF provides them.
* Do NOT introduce fields or sections that are not present in the PDF.

VALIDATION REQUIREMENTS

* The JSON MUST be valid OpenAPI 3.0.3: no trailing commas, no duplicate keys, every $ref
  resolves, one "components" object with one "securitySchemes" object.
* If a piece of information is missing from the PDF, omit it rather than guessing.
"""

_INLINE_CONTRACT = """\
You are an API architect. Read the following PDF content (base64-encoded below) and OUTPUT ONLY \
a valid OpenAPI 3.0.3 JSON object (no markdown, no code fences, no prose).
Include: openapi, info(title/version/description), tags, components(schemas), paths, and \
security if mentioned. Derive every field strictly from the document, do not invent names, and \
preserve the original casing of every identifier.
"""


def _metadata(title: str, version: str, description: Optional[str]) -> str:
    return f"Title: {title}\nVersion: {version}\nDescription: {description or ''}\n"


def build_pdf_prompt(title: str, version: str, description: Optional[str]) -> str:
    """Return the full instruction prompt for a PDF sent as its own message part."""
    return (
        f"{_PDF_CONTRACT}\n"
        "INPUT METADATA (use these values verbatim)\n"
        f"{_metadata(title, version, description)}\n"
        "OUTPUT\n"
        "* Output ONLY the OpenAPI JSON object. Nothing else.\n"
    )


def build_inline_prompt(
    title: str, version: str, description: Optional[str], pdf_base64: str
) -> str:
    """Return the short prompt with the base64 PDF embedded in the text."""
    return f"{_INLINE_CONTRACT}{_metadata(title, version, description)}\nPDF(base64): {pdf_base64}\n"
