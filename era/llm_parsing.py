from __future__ import annotations

import enum
import json
import logging
import re
from typing import Any, Callable, Optional, Tuple

from era.fallback import fallback_document

log = logging.getLogger(__name__)

_ROOT_MARKER_RE = re.compile(r"<!doctype\s+html|<html[\s>]", re.IGNORECASE)
_FENCED_HTML_RE = re.compile(r"```[ \t]*(?:html)?[ \t]*\n([\s\S]*?)```", re.IGNORECASE)
_HTML_CLOSE_RE = re.compile(r"</html\s*>", re.IGNORECASE)
_FOREIGN_MARKERS = (
    "export default",
    "import React",
    "from 'react'",
    'from "react"',
)

Extractor = Callable[[Any], Optional[str]]
Converter = Callable[[str], Any]


class ContentKind(enum.Enum):
    PLAIN_MARKUP = "plain_markup"
    FOREIGN_FRAMEWORK = "foreign_framework"
    UNRECOGNIZED = "unrecognized"


def _coerce_payload(raw: Any) -> Any:
    """Decode a JSON text body; anything else is returned as-is."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        s = raw.strip()
        if s.startswith("{") or s.startswith("["):
            try:
                return json.loads(s)
            except ValueError:
                return raw
    return raw


def _non_blank(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _field_extractor(key: str) -> Extractor:
    def extract(raw: Any) -> Optional[str]:
        if not isinstance(raw, dict):
            return None
        return _non_blank(raw.get(key))

    extract.__name__ = f"extract_{key}"
    return extract


def extract_chat_content(raw: Any) -> Optional[str]:
    """``choices[0].message.content`` as a string, or its text parts joined."""
    if not isinstance(raw, dict):
        return None
    choices = raw.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
            elif isinstance(part, str):
                parts.append(part)
        content = "".join(parts)
    return _non_blank(content)


def extract_plain_text(raw: Any) -> Optional[str]:
    return _non_blank(raw) if isinstance(raw, str) else None


# Fixed precedence; first non-blank result wins.
EXTRACTORS: Tuple[Extractor, ...] = (
    _field_extractor("code"),
    _field_extractor("html"),
    _field_extractor("content"),
    extract_chat_content,
    extract_plain_text,
)


def extract_text(raw: Any) -> Optional[str]:
    payload = _coerce_payload(raw)
    for extractor in EXTRACTORS:
        try:
            text = extractor(payload)
        except Exception as e:
            log.debug("extractor %s failed: %r", getattr(extractor, "__name__", extractor), e)
            continue
        if text:
            return text
    return None


def has_root_marker(text: str) -> bool:
    return bool(text) and bool(_ROOT_MARKER_RE.search(text))


def classify(text: str) -> ContentKind:
    """Tag generated text as plain markup, component-framework code, or neither.

    Framework markers win over a root marker: a page that still imports React
    needs a build step and cannot be served as-is.
    """
    if not text:
        return ContentKind.UNRECOGNIZED
    if any(marker in text for marker in _FOREIGN_MARKERS):
        return ContentKind.FOREIGN_FRAMEWORK
    if has_root_marker(text):
        return ContentKind.PLAIN_MARKUP
    return ContentKind.UNRECOGNIZED


def _starts_with_root(text: str) -> bool:
    return bool(_ROOT_MARKER_RE.match(text.lstrip()))


def extract_fenced_html(text: str) -> Optional[str]:
    """Inner content of the first ```html (or unlabelled) block that holds a full document."""
    for m in _FENCED_HTML_RE.finditer(text or ""):
        inner = m.group(1).strip()
        if _starts_with_root(inner):
            return inner
    return None


def slice_document(text: str) -> Optional[str]:
    """From the first doctype/html root to the last ``</html>``, or None."""
    start = _ROOT_MARKER_RE.search(text or "")
    if not start:
        return None
    closes = list(_HTML_CLOSE_RE.finditer(text, start.start()))
    if not closes:
        return None
    return text[start.start():closes[-1].end()]


def _convert(text: str, convert: Optional[Converter]) -> Optional[str]:
    if convert is None:
        log.info("normalize: component code returned and no converter available; using fallback")
        return None
    try:
        converted = convert(text)
    except Exception as e:
        log.warning("normalize: conversion to plain HTML failed: %s", e)
        return None
    out = extract_text(converted)
    if not out:
        log.warning("normalize: conversion returned no extractable content")
        return None
    if classify(out) is ContentKind.FOREIGN_FRAMEWORK:
        log.warning("normalize: conversion still returned component code")
        return None
    return out


def normalize(raw: Any, convert: Optional[Converter] = None) -> str:
    """Turn a raw provider response into a standalone HTML document.

    Strategy, stopping at the first success:
    - Extract text via EXTRACTORS (direct code/html/content, chat content, plain body).
    - Component-framework code goes through ``convert``; any failure there means fallback.
    - Text without a doctype/html root yields the fallback document.
    - Text that opens with a doctype/html root is returned unchanged.
    - Otherwise (chat prose around the page) the first ```html or unlabelled fence
      holding a full document is used, then the span from the first root tag to
      the last ``</html>``. Anything else yields the fallback.

    Never raises.
    """
    try:
        text = extract_text(raw)
        if not text:
            log.warning("normalize: no extractable content in provider response")
            return fallback_document()

        if classify(text) is ContentKind.FOREIGN_FRAMEWORK:
            text = _convert(text, convert)
            if not text:
                return fallback_document()

        if not has_root_marker(text):
            log.warning("normalize: provider text has no HTML document; using fallback")
            return fallback_document()

        if _starts_with_root(text):
            return text
        document = extract_fenced_html(text) or slice_document(text)
        if not document:
            log.warning("normalize: could not isolate an HTML document from provider text; using fallback")
            return fallback_document()
        return document
    except Exception:
        log.exception("normalize: unexpected error; using fallback")
        return fallback_document()
