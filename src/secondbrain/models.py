from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union

# NSPasteboard type identifiers
PDF_TYPE = "com.adobe.pdf"
TIFF_TYPE = "public.tiff"
PNG_TYPE = "public.png"
FILENAMES_TYPE = "NSFilenamesPboardType"
RTF_TYPE = "public.rtf"
HTML_TYPE = "public.html"
STRING_TYPE = "public.utf8-plain-text"

PayloadValue = Union[bytes, str, list[str]]


class ContentKind(str, Enum):
    PDF = "pdf"
    IMAGE = "image"
    MULTIPLE_FILES = "multiple_files"
    SINGLE_FILE = "single_file"
    RICH_TEXT = "rich_text"
    HTML = "html"
    WEB_LINK = "web_link"
    PLAIN_TEXT = "plain_text"
    UNRECOGNIZED = "unrecognized"


class CaptureTrigger(str, Enum):
    MANUAL_SHORTCUT = "manual_shortcut"
    AUTO_POLL = "auto_poll"
    DROP = "drop"


class FailureReason(str, Enum):
    NO_ROOT_CONFIGURED = "no_root_configured"
    RESOLUTION_FAILED = "resolution_failed"
    UNRECOGNIZED_CONTENT = "unrecognized_content"
    PERSISTENCE_FAILURE = "persistence_failure"


@dataclass(frozen=True)
class ClipboardPayload:
    """Everything held by the clipboard or a single drop, in pasteboard order."""

    items: tuple[tuple[str, PayloadValue], ...] = ()

    @classmethod
    def from_text(cls, text: str) -> "ClipboardPayload":
        return cls(((STRING_TYPE, text),))

    @classmethod
    def from_files(cls, paths: list[str]) -> "ClipboardPayload":
        return cls(((FILENAMES_TYPE, [str(p) for p in paths]),))

    @classmethod
    def from_image(cls, data: bytes, tag: str = PNG_TYPE) -> "ClipboardPayload":
        return cls(((tag, data),))

    @property
    def tags(self) -> list[str]:
        return [tag for tag, _ in self.items]

    @property
    def is_empty(self) -> bool:
        return not self.items

    def has(self, tag: str) -> bool:
        return any(t == tag for t, _ in self.items)

    def get(self, tag: str) -> PayloadValue | None:
        for t, value in self.items:
            if t == tag:
                return value
        return None


@dataclass(frozen=True)
class DestinationPlan:
    subfolder: str | None
    filename: str


@dataclass(frozen=True)
class CaptureResult:
    success: bool
    kind: ContentKind
    filename: str = ""
    text_preview: str | None = None
    category: str = ""
    saved_paths: tuple[str, ...] = ()
    failure: FailureReason | None = None


@dataclass
class CaptureRecord:
    id: int | None
    kind: ContentKind
    category: str
    filename: str
    path: str
    preview: str | None
    trigger: CaptureTrigger
    created_at: datetime = field(default_factory=datetime.now)
