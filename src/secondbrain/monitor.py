import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from secondbrain.models import CaptureResult, CaptureTrigger, ClipboardPayload
from secondbrain.service import ClipboardCaptureService

logger = logging.getLogger(__name__)


class ClipboardMonitor:
    """Polls the clipboard change counter and runs captures one at a time.

    ``check_clipboard`` is called from the poll timer and only reads the
    counter; the capture itself runs on a single worker thread so a slow write
    never stalls the timer and two captures never race on the clipboard or on
    the same second-resolution filename.
    """

    def __init__(
        self,
        service: ClipboardCaptureService,
        pasteboard,
        auto_save: Callable[[], bool] = lambda: True,
        on_result: Callable[[CaptureTrigger, CaptureResult], None] | None = None,
    ):
        self._service = service
        self._pasteboard = pasteboard
        self._auto_save = auto_save
        self._on_result = on_result
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="capture")
        self._lock = threading.Lock()
        self._manual_in_flight = 0
        self._last_change_count = self._pasteboard.change_count()

    def check_clipboard(self) -> bool:
        """Dispatch an auto-save capture if the clipboard changed since the last tick."""
        with self._lock:
            if self._manual_in_flight:
                # The simulated copy and the restore are not new content
                return False
            current_count = self._pasteboard.change_count()
            if current_count == self._last_change_count:
                return False
            self._last_change_count = current_count

        if not self._auto_save():
            return False

        self.dispatch(CaptureTrigger.AUTO_POLL)
        return True

    def sync_change_count(self) -> None:
        with self._lock:
            self._last_change_count = self._pasteboard.change_count()

    def dispatch(self, trigger: CaptureTrigger, payload: ClipboardPayload | None = None) -> Future:
        if trigger == CaptureTrigger.MANUAL_SHORTCUT:
            with self._lock:
                self._manual_in_flight += 1
        return self._executor.submit(self._run, trigger, payload)

    def _run(self, trigger: CaptureTrigger, payload: ClipboardPayload | None) -> CaptureResult | None:
        result = None
        try:
            result = self._service.capture(trigger, payload)
        except Exception:
            logger.exception("Error capturing clipboard")
        finally:
            if trigger == CaptureTrigger.MANUAL_SHORTCUT:
                with self._lock:
                    self._manual_in_flight -= 1
                    self._last_change_count = self._pasteboard.change_count()

        if result is not None and self._on_result:
            try:
                self._on_result(trigger, result)
            except Exception:
                logger.exception("Error handling capture result")
        return result

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
