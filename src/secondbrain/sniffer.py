"""Classification of clipboard and drop payloads.

Payloads usually expose several formats at once (a copied image often also
carries a file reference, a web selection carries RTF, HTML and plain text),
so the rules below are tried in a fixed order and the first match wins.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

from secondbrain.models import (
    FILENAMES_TYPE,
    HTML_TYPE,
    PDF_TYPE,
    PNG_TYPE,
    RTF_TYPE,
    STRING_TYPE,
    TIFF_TYPE,
    ClipboardPayload,
    ContentKind,
)
from secondbrain.planner import category_for
from secondbrain.utils import to_png

logger = logging.getLogger(__name__)

IMAGE_TYPES = (TIFF_TYPE, PNG_TYPE)  # high-fidelity bitmap first
WEB_SCHEMES = ("http", "https")


@dataclass(frozen=True)
class SniffedContent:
    kind: ContentKind
    category: str = ""
    data: bytes | None = None
    text: str | None = None
    paths: tuple[str, ...] = ()
    url: str | None = None
    host: str | None = None


def _as_bytes(value) -> bytes | None:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    return None


def _as_text(value) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return None
    return None


def _literal_host(netloc: str) -> str | None:
    """Host part of ``netloc`` as typed, without userinfo or port."""
    host = netloc.rpartition("@")[2]
    if host.startswith("["):
        end = host.find("]")
        host = host[: end + 1] if end != -1 else host
    else:
        host = host.partition(":")[0]
    return host or None


def parse_web_link(text: str) -> tuple[str, str | None] | None:
    """Return ``(url, host)`` if ``text`` is an absolute http(s) URL."""
    candidate = text.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return None
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return None
    if parts.scheme.lower() not in WEB_SCHEMES or not parts.netloc:
        return None
    return candidate, _literal_host(parts.netloc)


def _sniff_pdf(payload: ClipboardPayload) -> SniffedContent | None:
    data = _as_bytes(payload.get(PDF_TYPE))
    if not data:
        return None
    return SniffedContent(ContentKind.PDF, category_for(ContentKind.PDF), data=data)


def _sniff_image(payload: ClipboardPayload) -> SniffedContent | None:
    for tag in IMAGE_TYPES:
        data = _as_bytes(payload.get(tag))
        if not data:
            continue
        png = to_png(data)
        if png is not None:
            return SniffedContent(ContentKind.IMAGE, category_for(ContentKind.IMAGE), data=png)
        logger.warning("Clipboard %s data could not be converted to PNG", tag)
    return None


def _sniff_files(payload: ClipboardPayload) -> SniffedContent | None:
    value = payload.get(FILENAMES_TYPE)
    if isinstance(value, str):
        value = [line for line in value.splitlines() if line.strip()]
    if not value:
        return None
    paths = tuple(str(p) for p in value)
    if len(paths) > 1:
        return SniffedContent(ContentKind.MULTIPLE_FILES, f"{len(paths)} Files", paths=paths)
    extension = Path(paths[0]).suffix.lstrip(".").lower()
    return SniffedContent(ContentKind.SINGLE_FILE, category_for(ContentKind.SINGLE_FILE, extension), paths=paths)


def _sniff_rtf(payload: ClipboardPayload) -> SniffedContent | None:
    data = _as_bytes(payload.get(RTF_TYPE))
    if not data:
        return None
    return SniffedContent(ContentKind.RICH_TEXT, category_for(ContentKind.RICH_TEXT), data=data)


def _sniff_html(payload: ClipboardPayload) -> SniffedContent | None:
    html = _as_text(payload.get(HTML_TYPE))
    if not html:
        return None
    return SniffedContent(ContentKind.HTML, category_for(ContentKind.HTML), data=html.encode("utf-8"))


def _sniff_web_link(payload: ClipboardPayload) -> SniffedContent | None:
    text = _as_text(payload.get(STRING_TYPE))
    if not text:
        return None
    link = parse_web_link(text)
    if link is None:
        return None
    url, host = link
    return SniffedContent(ContentKind.WEB_LINK, category_for(ContentKind.WEB_LINK), text=text, url=url, host=host)


def _sniff_plain_text(payload: ClipboardPayload) -> SniffedContent | None:
    text = _as_text(payload.get(STRING_TYPE))
    if not text:
        return None
    return SniffedContent(ContentKind.PLAIN_TEXT, category_for(ContentKind.PLAIN_TEXT), text=text)


class ContentSniffer:
    # Evaluated in order; each rule returns the matched content or None
    RULES: list[Callable[[ClipboardPayload], SniffedContent | None]] = [
        _sniff_pdf,
        _sniff_image,
        _sniff_files,
        _sniff_rtf,
        _sniff_html,
        _sniff_web_link,
        _sniff_plain_text,
    ]

    def sniff(self, payload: ClipboardPayload) -> SniffedContent:
        logger.debug("Sniffing payload with types: %s", payload.tags)
        for rule in self.RULES:
            content = rule(payload)
            if content is not None:
                return content
        return SniffedContent(ContentKind.UNRECOGNIZED)

    def classify(self, payload: ClipboardPayload) -> ContentKind:
        return self.sniff(payload).kind
