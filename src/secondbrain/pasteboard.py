import logging
import time

from secondbrain.config import COPY_TIMEOUT
from secondbrain.models import (
    FILENAMES_TYPE,
    HTML_TYPE,
    PDF_TYPE,
    PNG_TYPE,
    RTF_TYPE,
    STRING_TYPE,
    TIFF_TYPE,
    ClipboardPayload,
)

logger = logging.getLogger(__name__)

TEXT_TYPES = (HTML_TYPE, STRING_TYPE)
DATA_TYPES = (PDF_TYPE, TIFF_TYPE, PNG_TYPE, RTF_TYPE)

C_KEY_CODE = 8  # virtual key code for 'c'


class MacPasteboard:
    """Reads, snapshots and restores the general NSPasteboard.

    AppKit is imported lazily so the capture core can be used and tested
    without PyObjC.
    """

    def __init__(self, pasteboard=None):
        if pasteboard is None:
            from AppKit import NSPasteboard

            pasteboard = NSPasteboard.generalPasteboard()
        self._pasteboard = pasteboard

    def change_count(self) -> int:
        return int(self._pasteboard.changeCount())

    def read_payload(self) -> ClipboardPayload:
        types = self._pasteboard.types()
        if types is None:
            return ClipboardPayload()
        present = {str(t) for t in types}

        items = []
        for tag in DATA_TYPES:
            if tag in present:
                data = self._pasteboard.dataForType_(tag)
                if data is not None:
                    items.append((tag, bytes(data)))

        if FILENAMES_TYPE in present:
            filenames = self._pasteboard.propertyListForType_(FILENAMES_TYPE)
            if filenames:
                items.append((FILENAMES_TYPE, [str(f) for f in filenames]))

        for tag in TEXT_TYPES:
            if tag in present:
                text = self._pasteboard.stringForType_(tag)
                if text is not None:
                    items.append((tag, str(text)))

        return ClipboardPayload(tuple(items))

    def take(self) -> list[tuple[str, bytes]]:
        """Snapshot every materialized type as raw bytes."""
        items: list[tuple[str, bytes]] = []
        for t in self._pasteboard.types() or []:
            data = self._pasteboard.dataForType_(t)
            if data is None:
                # Promised types that never materialize
                continue
            items.append((str(t), bytes(data)))
        return items

    def restore(self, items: list[tuple[str, bytes]]) -> None:
        self._pasteboard.clearContents()
        for tag, raw in items:
            if not self._pasteboard.setData_forType_(raw, tag):
                logger.warning("Could not restore clipboard type %s", tag)

    def copy_selection(self, timeout: float = COPY_TIMEOUT) -> bool:
        """Send Cmd+C to the frontmost app and wait for the clipboard to change.

        Returns:
            True if the clipboard changed before the timeout
        """
        before = self.change_count()
        post_copy_keystroke()

        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self.change_count() != before:
                return True
            time.sleep(0.02)
        logger.info("Clipboard did not change after simulated copy")
        return False


def post_copy_keystroke() -> None:
    from Quartz import (
        CGEventCreateKeyboardEvent,
        CGEventPost,
        CGEventSetFlags,
        CGEventSourceCreate,
        kCGEventFlagMaskCommand,
        kCGEventSourceStateHIDSystemState,
        kCGHIDEventTap,
    )

    source = CGEventSourceCreate(kCGEventSourceStateHIDSystemState)
    for key_down in (True, False):
        event = CGEventCreateKeyboardEvent(source, C_KEY_CODE, key_down)
        CGEventSetFlags(event, kCGEventFlagMaskCommand)
        CGEventPost(kCGHIDEventTap, event)
