import logging
from typing import Protocol

from secondbrain.config import NOTIFICATION_TITLE
from secondbrain.models import CaptureResult, ContentKind

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify(self, result: CaptureResult) -> None: ...


def build_message(result: CaptureResult) -> tuple[str, str]:
    """Return the (title, body) shown for a saved capture."""
    if result.kind == ContentKind.PLAIN_TEXT and result.text_preview:
        display_name = result.text_preview
    else:
        display_name = result.filename
    return NOTIFICATION_TITLE, f"{result.category}: {display_name} was logged and stored."


class RumpsNotifier:
    def __init__(self, sound: bool = True):
        self._sound = sound

    def notify(self, result: CaptureResult) -> None:
        import rumps

        title, body = build_message(result)
        try:
            rumps.notification(title, "", body, sound=self._sound)
        except Exception:
            logger.exception("Error showing notification for %s", result.filename)

