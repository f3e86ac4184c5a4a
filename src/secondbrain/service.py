import logging
import shutil
import sqlite3
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Protocol

from secondbrain.errors import NoRootConfigured, PersistenceFailure, ResolutionFailed
from secondbrain.models import (
    CaptureRecord,
    CaptureResult,
    CaptureTrigger,
    ClipboardPayload,
    ContentKind,
    DestinationPlan,
    FailureReason,
)
from secondbrain.notify import NotificationSink
from secondbrain.planner import PathPlanner, ensure_destination
from secondbrain.roots import StorageRoot
from secondbrain.sniffer import ContentSniffer, SniffedContent
from secondbrain.storage import StorageManager
from secondbrain.utils import text_preview

logger = logging.getLogger(__name__)

FILE_KINDS = (ContentKind.SINGLE_FILE, ContentKind.MULTIPLE_FILES)


class Clipboard(Protocol):
    def read_payload(self) -> ClipboardPayload: ...

    def take(self) -> list[tuple[str, bytes]]: ...

    def restore(self, items: list[tuple[str, bytes]]) -> None: ...

    def copy_selection(self) -> bool: ...


def web_link_document(url: str, host: str | None, now: datetime) -> str:
    return f"# Web Link\n\n[{host or 'Link'}]({url})\n\nSaved: {now.isoformat(sep=' ', timespec='seconds')}"


class ClipboardCaptureService:
    """Classifies clipboard or drop content and files it into the data folder.

    A capture resolves the data folder, snapshots the clipboard when the
    trigger is user initiated, sniffs the payload, writes it under a
    timestamped name and, for the manual shortcut, puts the original
    clipboard back. Failures come back as a ``CaptureResult`` rather than an
    exception.
    """

    def __init__(
        self,
        storage_root: StorageRoot,
        clipboard: Clipboard | None = None,
        notifier: NotificationSink | None = None,
        history: StorageManager | None = None,
        organize_by_type: bool | Callable[[], bool] = False,
        sniffer: ContentSniffer | None = None,
        planner: PathPlanner | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._root = storage_root
        self._clipboard = clipboard
        self._notifier = notifier
        self._history = history
        self._organize_by_type = organize_by_type
        self._sniffer = sniffer or ContentSniffer()
        self._planner = planner or PathPlanner()
        self._clock = clock

    def capture(
        self,
        trigger: CaptureTrigger,
        payload: ClipboardPayload | None = None,
        root: StorageRoot | None = None,
        organize_by_type: bool | None = None,
    ) -> CaptureResult:
        storage_root = root or self._root
        try:
            handle = storage_root.resolve()
        except NoRootConfigured:
            logger.warning("Capture aborted: no data folder configured")
            return CaptureResult(False, ContentKind.UNRECOGNIZED, failure=FailureReason.NO_ROOT_CONFIGURED)
        except ResolutionFailed as e:
            logger.error("Capture aborted: %s", e)
            storage_root.clear()
            return CaptureResult(False, ContentKind.UNRECOGNIZED, failure=FailureReason.RESOLUTION_FAILED)

        with handle:
            if organize_by_type is None:
                organize_by_type = self._organize_by_type() if callable(self._organize_by_type) else self._organize_by_type
            result = self._capture_into(handle.path, trigger, payload, organize_by_type)

        if result.success:
            self._report(result, trigger)
        return result

    def _capture_into(
        self,
        root: Path,
        trigger: CaptureTrigger,
        payload: ClipboardPayload | None,
        organize_by_type: bool,
    ) -> CaptureResult:
        # Auto-poll content is the live clipboard, there is nothing to undo
        snapshot = self._take_snapshot() if trigger != CaptureTrigger.AUTO_POLL else []
        # Only the simulated copy disturbs the clipboard
        simulated_copy = trigger == CaptureTrigger.MANUAL_SHORTCUT and payload is None
        try:
            if payload is None:
                payload = self._read_live(trigger)

            content = self._sniffer.sniff(payload)
            if content.kind == ContentKind.UNRECOGNIZED:
                logger.info("No supported content found (types: %s)", payload.tags)
                return CaptureResult(False, ContentKind.UNRECOGNIZED, failure=FailureReason.UNRECOGNIZED_CONTENT)

            logger.debug("Classified payload as %s", content.kind.value)
            return self._persist(root, trigger, content, organize_by_type)
        finally:
            if simulated_copy and snapshot:
                self._restore(snapshot)

    def _read_live(self, trigger: CaptureTrigger) -> ClipboardPayload:
        if self._clipboard is None:
            return ClipboardPayload()
        if trigger == CaptureTrigger.MANUAL_SHORTCUT:
            self._clipboard.copy_selection()
        return self._clipboard.read_payload()

    def _take_snapshot(self) -> list[tuple[str, bytes]]:
        if self._clipboard is None:
            return []
        try:
            return self._clipboard.take()
        except Exception:
            logger.exception("Could not snapshot clipboard, it will not be restored")
            return []

    def _restore(self, snapshot: list[tuple[str, bytes]]) -> None:
        try:
            self._clipboard.restore(snapshot)
        except Exception:
            logger.exception("Could not restore clipboard")

    def _persist(
        self,
        root: Path,
        trigger: CaptureTrigger,
        content: SniffedContent,
        organize_by_type: bool,
    ) -> CaptureResult:
        now = self._clock()

        if content.kind in FILE_KINDS:
            return self._copy_files(root, content, organize_by_type, now)

        plan = self._planner.plan(
            content.kind,
            organize_by_type=organize_by_type,
            now=now,
            dropped=trigger == CaptureTrigger.DROP,
        )
        if content.kind == ContentKind.WEB_LINK:
            body = web_link_document(content.url, content.host, now).encode("utf-8")
        elif content.kind == ContentKind.PLAIN_TEXT:
            body = content.text.encode("utf-8")
        else:
            body = content.data

        preview = text_preview(content.text) if content.kind == ContentKind.PLAIN_TEXT else None
        saved: list[str] = []
        try:
            saved.append(str(self._write(root, plan, body)))
        except PersistenceFailure as e:
            logger.error("%s", e)

        return CaptureResult(
            success=bool(saved),
            kind=content.kind,
            filename=plan.filename,
            text_preview=preview,
            category=content.category,
            saved_paths=tuple(saved),
            failure=None if saved else FailureReason.PERSISTENCE_FAILURE,
        )

    def _copy_files(self, root: Path, content: SniffedContent, organize_by_type: bool, now: datetime) -> CaptureResult:
        saved: list[str] = []
        filename = ""
        for source in content.paths:
            plan = self._planner.plan(
                content.kind,
                organize_by_type=organize_by_type,
                now=now,
                source_name=Path(source).name,
            )
            filename = plan.filename
            # Each file stands alone; one bad path must not lose the others
            try:
                saved.append(str(self._copy(root, plan, Path(source))))
            except PersistenceFailure as e:
                logger.error("%s", e)

        if content.kind == ContentKind.MULTIPLE_FILES:
            filename = "Multiple files"
            logger.info("Copied %d of %d files", len(saved), len(content.paths))

        return CaptureResult(
            success=bool(saved),
            kind=content.kind,
            filename=filename,
            category=content.category,
            saved_paths=tuple(saved),
            failure=None if saved else FailureReason.PERSISTENCE_FAILURE,
        )

    def _write(self, root: Path, plan: DestinationPlan, body: bytes) -> Path:
        try:
            target = ensure_destination(root, plan)
            target.write_bytes(body)
        except OSError as e:
            raise PersistenceFailure(plan.filename, str(e)) from e
        logger.info("Saved %s", target)
        return target

    def _copy(self, root: Path, plan: DestinationPlan, source: Path) -> Path:
        try:
            target = ensure_destination(root, plan)
            if source.is_dir():
                shutil.copytree(source, target, dirs_exist_ok=True)
            else:
                shutil.copy2(source, target)
        except OSError as e:
            raise PersistenceFailure(str(source), str(e)) from e
        logger.info("Copied %s to %s", source, target)
        return target

    def _report(self, result: CaptureResult, trigger: CaptureTrigger) -> None:
        if self._notifier is not None:
            try:
                self._notifier.notify(result)
            except Exception:
                logger.exception("Error sending notification")

        if self._history is None:
            return
        try:
            for path in result.saved_paths:
                self._history.add_capture(
                    CaptureRecord(
                        id=None,
                        kind=result.kind,
                        category=result.category,
                        filename=Path(path).name,
                        path=path,
                        preview=result.text_preview,
                        trigger=trigger,
                    )
                )
            self._history.purge_old()
        except sqlite3.Error:
            logger.exception("Error recording capture history")
