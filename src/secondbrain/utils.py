import logging
from datetime import datetime
from io import BytesIO

from PIL import Image

from secondbrain.config import DATA_DIR, PREVIEW_WORDS, TIMESTAMP_FORMAT

logger = logging.getLogger(__name__)

TEXT_SNIPPET = "Text snippet"

# Modes Pillow can write to PNG as-is
_PNG_MODES = {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}


def ensure_dirs() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)


def format_timestamp(now: datetime) -> str:
    return now.strftime(TIMESTAMP_FORMAT)


def truncate_text(text: str, max_len: int) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


def text_preview(text: str, max_words: int = PREVIEW_WORDS) -> str:
    """Return the first few words of ``text`` for display in a notification.

    Words are whitespace-delimited and re-joined with single spaces. An
    ellipsis is appended only when words were dropped; text that is empty
    after trimming yields ``"Text snippet"``.
    """
    words = text.split()
    if not words:
        return TEXT_SNIPPET
    preview = " ".join(words[:max_words])
    if len(words) > max_words:
        preview += "..."
    return preview


def to_png(data: bytes) -> bytes | None:
    """Re-encode bitmap data (TIFF, PNG, ...) as PNG using Pillow.

    Returns:
        The PNG bytes, or None if the data could not be decoded or encoded
    """
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            if img.mode not in _PNG_MODES:
                img = img.convert("RGBA")
            out = BytesIO()
            img.save(out, format="PNG")
            return out.getvalue()
    except Exception:
        logger.debug("Could not re-encode %d bytes of image data as PNG", len(data), exc_info=True)
        return None
