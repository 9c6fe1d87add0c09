# response_parser.py
# Description: Normalizes the JSON bodies returned by the Cohere chat
# endpoints into (text, citations, error). Several API generations are in
# use at once, so a body is first classified into one known shape and then
# rendered; citations are extracted in a separate pass.

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from errors import ChatFailure, ErrorKind

logger = logging.getLogger(__name__)

NO_CONTENT_MESSAGE = "No content found from assistant"
NO_CITATION_TEXT = "(no text)"

# Error text heuristics, checked in order; first substring hit wins.
# The API gives no structured error code, so this is inherently fuzzy: any
# error mentioning "model" (e.g. a rate limit naming the model) is treated
# as a model-validity failure.
ERROR_PATTERNS: Tuple[Tuple[str, ErrorKind], ...] = (
    ("model", ErrorKind.INVALID_MODEL),
    ("invalid", ErrorKind.INVALID_MODEL),
)

TEXT_FIELDS = ("text", "reply", "response")
CITATION_SOURCES: Tuple[Tuple[str, ...], ...] = (
    ("message", "citations"),
    ("citations",),
    ("documents",),
    ("web_search",),
)
CITATION_TEXT_FIELDS = ("text", "snippet", "title")
CITATION_URL_FIELDS = ("url", "link", "source")


# ---------------------------------------------------------------------------
# response shapes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorShape:
    message: str


@dataclass(frozen=True)
class StructuredShape:
    blocks: Sequence[Any]


@dataclass(frozen=True)
class FlatTextShape:
    text: str


@dataclass(frozen=True)
class UnknownShape:
    raw: Any


ResponseShape = Union[ErrorShape, StructuredShape, FlatTextShape, UnknownShape]


@dataclass(frozen=True)
class Citation:
    index: int
    display_text: str
    source_url: Optional[str] = None
    title: Optional[str] = None


@dataclass(frozen=True)
class ParsedResponse:
    text: str
    citations: List[Citation] = field(default_factory=list)
    error: Optional[ChatFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# classification
# ---------------------------------------------------------------------------

def _error_text(raw: Mapping[str, Any]) -> Optional[str]:
    for key in ("message", "error"):
        value = raw.get(key)
        if isinstance(value, str):
            return value
    return None


def classify(raw: Any) -> ResponseShape:
    """Resolve a raw body to exactly one shape. Order matters: first match wins."""
    if not isinstance(raw, Mapping):
        return UnknownShape(raw)

    error = _error_text(raw)
    if error is not None:
        return ErrorShape(error)

    message = raw.get("message")
    if isinstance(message, Mapping):
        content = message.get("content")
        if isinstance(content, list):
            return StructuredShape(content)
        if isinstance(content, str):
            return FlatTextShape(content)

    for key in TEXT_FIELDS:
        value = raw.get(key)
        if isinstance(value, str):
            return FlatTextShape(value)

    return UnknownShape(raw)


def classify_error_text(text: str) -> ErrorKind:
    lowered = text.lower()
    for pattern, kind in ERROR_PATTERNS:
        if pattern in lowered:
            return kind
    return ErrorKind.API_ERROR


def is_model_error(raw: Any) -> Optional[str]:
    """Return the error text if `raw` is an error body blaming the model."""
    shape = classify(raw)
    if isinstance(shape, ErrorShape) and classify_error_text(shape.message) is ErrorKind.INVALID_MODEL:
        return shape.message
    return None


# ---------------------------------------------------------------------------
# rendering
# ---------------------------------------------------------------------------

def _block_text(block: Mapping[str, Any]) -> str:
    for key in ("text", "thinking"):
        value = block.get(key)
        if isinstance(value, str):
            return value
    return ""


def render_content_blocks(blocks: Sequence[Any]) -> str:
    """Render typed content blocks, separated by a blank line."""
    rendered: List[str] = []
    for block in blocks:
        if isinstance(block, str):
            rendered.append(block)
            continue
        if not isinstance(block, Mapping):
            continue
        kind = block.get("type")
        text = _block_text(block)
        if kind == "code":
            rendered.append(f"```\n{text}\n```")
        elif kind == "thinking":
            rendered.append(f"[thinking block] {text}")
        elif kind == "system":
            rendered.append(f"[system block] {text}")
        else:
            rendered.append(text)
    return "\n\n".join(rendered)


def _dump(raw: Any) -> str:
    try:
        return json.dumps(raw, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return repr(raw)


def parse(raw: Any) -> ParsedResponse:
    """
    Normalize a response body.

    Args:
        raw: decoded JSON (or raw text when the body was not JSON).

    Returns:
        ParsedResponse with `error` set for API errors and for bodies that
        yield no text; citations are extracted regardless of the text shape.
    """
    shape = classify(raw)
    citations = extract_citations(raw)

    if isinstance(shape, ErrorShape):
        failure = ChatFailure(
            kind=ErrorKind.API_ERROR,
            message=f"API Error: {shape.message}",
            detail=_dump(raw),
        )
        logger.warning("API returned an error", extra={"error": shape.message})
        return ParsedResponse(text="", citations=[], error=failure)

    text = ""
    if isinstance(shape, StructuredShape):
        text = render_content_blocks(shape.blocks)
    elif isinstance(shape, FlatTextShape):
        text = shape.text

    if not text.strip():
        logger.warning("Response had no usable content", extra={"shape": type(shape).__name__})
        failure = ChatFailure(
            kind=ErrorKind.UNPARSEABLE_RESPONSE,
            message=NO_CONTENT_MESSAGE,
            detail=_dump(raw),
        )
        return ParsedResponse(text="", citations=[], error=failure)

    return ParsedResponse(text=text, citations=citations)


# ---------------------------------------------------------------------------
# citations
# ---------------------------------------------------------------------------

_MISSING = object()


def _lookup(raw: Mapping[str, Any], path: Sequence[str]) -> Any:
    node: Any = raw
    for key in path:
        if not isinstance(node, Mapping) or key not in node:
            return _MISSING
        node = node[key]
    return node


def _first_str(item: Mapping[str, Any], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def extract_citations(raw: Any) -> List[Citation]:
    """
    Normalize the first citation source present in `raw`. A present key ends
    the search even when it holds null or an empty list.
    """
    if not isinstance(raw, Mapping):
        return []

    items: Any = None
    for path in CITATION_SOURCES:
        found = _lookup(raw, path)
        if found is not _MISSING:
            items = found
            break
    if not items or not isinstance(items, list):
        return []

    citations: List[Citation] = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, Mapping):
            item = {"text": str(item)}
        citations.append(
            Citation(
                index=position,
                display_text=_first_str(item, CITATION_TEXT_FIELDS) or NO_CITATION_TEXT,
                source_url=_first_str(item, CITATION_URL_FIELDS),
                title=_first_str(item, ("title",)),
            )
        )
    return citations


def format_citations(citations: Sequence[Citation]) -> str:
    if not citations:
        return ""
    lines = ["", "--", "Citations:"]
    for c in citations:
        if c.source_url and c.title:
            lines.append(f"[{c.index}] '{c.title}': {c.source_url}")
        elif c.source_url:
            lines.append(f"[{c.index}] {c.display_text} → {c.source_url}")
        else:
            lines.append(f"[{c.index}] {c.display_text}")
    return "\n".join(lines)
