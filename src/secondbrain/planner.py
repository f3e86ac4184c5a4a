from datetime import datetime
from pathlib import Path

from secondbrain.models import ContentKind, DestinationPlan
from secondbrain.utils import format_timestamp

EXTENSION_CATEGORIES: dict[str, str] = {}
for _category, _extensions in (
    ("Image", ("jpg", "jpeg", "png", "gif", "bmp", "tiff", "webp", "heic")),
    ("PDF", ("pdf",)),
    ("Word Document", ("doc", "docx")),
    ("Spreadsheet", ("xls", "xlsx")),
    ("Presentation", ("ppt", "pptx")),
    ("Video", ("mp4", "mov", "avi", "mkv", "webm")),
    ("Audio", ("mp3", "wav", "aac", "flac", "m4a")),
    ("Archive", ("zip", "rar", "7z", "tar", "gz")),
    ("Text", ("txt", "md", "markdown")),
    ("HTML", ("html", "htm")),
    ("Code", ("css", "js", "json", "xml", "yaml", "yml")),
):
    for _ext in _extensions:
        EXTENSION_CATEGORIES[_ext] = _category

DEFAULT_CATEGORY = "File"

CATEGORY_SUBFOLDERS = {
    "Image": "Images",
    "PDF": "PDFs",
    "Word Document": "Documents",
    "Spreadsheet": "Documents",
    "Presentation": "Documents",
    "Rich Text": "Documents",
    "Video": "Videos",
    "Audio": "Audio",
    "Archive": "Archives",
    "Text": "Text",
    "HTML": "Web",
    "Web Link": "Web",
    "Code": "Code",
}
DEFAULT_SUBFOLDER = "Files"

# (filename prefix, extension, category) for kinds that are written from bytes
KIND_OUTPUTS = {
    ContentKind.PDF: ("document", "pdf", "PDF"),
    ContentKind.IMAGE: ("image", "png", "Image"),
    ContentKind.RICH_TEXT: ("document", "rtf", "Rich Text"),
    ContentKind.HTML: ("webpage", "html", "HTML"),
    ContentKind.WEB_LINK: ("link", "txt", "Web Link"),
    ContentKind.PLAIN_TEXT: ("text", "txt", "Text"),
}

_FILE_KINDS = (ContentKind.SINGLE_FILE, ContentKind.MULTIPLE_FILES)


def detect_file_type(extension: str | None) -> str:
    if not extension:
        return DEFAULT_CATEGORY
    return EXTENSION_CATEGORIES.get(extension.lower().lstrip("."), DEFAULT_CATEGORY)


def subfolder_for(category: str) -> str:
    return CATEGORY_SUBFOLDERS.get(category, DEFAULT_SUBFOLDER)


def category_for(kind: ContentKind, extension: str | None = None) -> str:
    if kind in _FILE_KINDS:
        return detect_file_type(extension)
    if kind in KIND_OUTPUTS:
        return KIND_OUTPUTS[kind][2]
    return DEFAULT_CATEGORY


class PathPlanner:
    """Turns a classified kind into a subfolder and a timestamped filename.

    Filenames have one-second resolution and are never de-duplicated: two
    captures of the same kind within one second write to the same name and
    the later one wins.
    """

    def plan(
        self,
        kind: ContentKind,
        extension: str | None = None,
        organize_by_type: bool = False,
        now: datetime | None = None,
        *,
        source_name: str | None = None,
        dropped: bool = False,
    ) -> DestinationPlan:
        if kind == ContentKind.UNRECOGNIZED:
            raise ValueError("Cannot plan a destination for unrecognized content")

        timestamp = format_timestamp(now or datetime.now())

        if kind in _FILE_KINDS:
            if not source_name:
                raise ValueError("File captures need the source file name")
            source = Path(source_name)
            ext = (extension if extension is not None else source.suffix).lower().lstrip(".")
            stem = source.stem if source.suffix else source.name
            filename = f"{stem}_{timestamp}.{ext}" if ext else f"{stem}_{timestamp}"
        else:
            prefix, ext, _ = KIND_OUTPUTS[kind]
            if dropped and kind in (ContentKind.IMAGE, ContentKind.PLAIN_TEXT):
                prefix = f"dropped_{prefix}"
            filename = f"{prefix}_{timestamp}.{ext}"

        subfolder = subfolder_for(category_for(kind, ext)) if organize_by_type else None
        return DestinationPlan(subfolder=subfolder, filename=filename)


def ensure_destination(root: Path, plan: DestinationPlan) -> Path:
    """Return the full target path for ``plan``, creating its subfolder if needed.

    Raises:
        OSError: if the subfolder cannot be created
    """
    folder = root / plan.subfolder if plan.subfolder else root
    folder.mkdir(parents=True, exist_ok=True)
    return folder / plan.filename
