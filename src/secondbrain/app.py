import logging
import queue
import subprocess
from pathlib import Path

import rumps

from secondbrain.config import DB_PATH, HOTKEY, POLL_INTERVAL
from secondbrain.menu import MenuActions, MenuItemSpec, compute_menu_specs, drain_results
from secondbrain.models import CaptureResult, CaptureTrigger
from secondbrain.monitor import ClipboardMonitor
from secondbrain.notify import RumpsNotifier
from secondbrain.pasteboard import MacPasteboard
from secondbrain.roots import FolderStorageRoot
from secondbrain.service import ClipboardCaptureService
from secondbrain.storage import StorageManager
from secondbrain.utils import ensure_dirs

logger = logging.getLogger(__name__)

NO_FOLDER_TITLE = "No Data Folder Configured"
NO_FOLDER_MESSAGE = "Please configure a data folder from the menu bar icon before saving."


class SecondBrainApp(rumps.App):
    def __init__(self):
        super().__init__("Second Brain", title="🧠", quit_button=None)
        self._init_app()

    def _init_app(self) -> None:
        """Initialize app components. Separated for testability."""
        ensure_dirs()
        self._storage = StorageManager(DB_PATH)
        self._pasteboard = MacPasteboard()
        self._service = ClipboardCaptureService(
            FolderStorageRoot(self._storage),
            clipboard=self._pasteboard,
            notifier=RumpsNotifier(),
            history=self._storage,
            organize_by_type=lambda: self._storage.organize_by_type,
        )
        self._monitor = ClipboardMonitor(
            self._service,
            self._pasteboard,
            auto_save=lambda: self._storage.auto_save,
            on_result=self._on_capture_result,
        )
        # Results arrive on the capture thread; the UI is only touched from the timer
        self._pending: queue.SimpleQueue[tuple[CaptureTrigger, CaptureResult]] = queue.SimpleQueue()
        self._capture_ids: dict[str, int] = {}
        self._actions = MenuActions(
            save_selection=self._on_save_selection,
            save_clipboard=self._on_save_clipboard,
            open_capture=self._on_capture_click,
            clear_history=self._on_clear_history,
            configure_folder=self._on_configure_folder,
            toggle_organize=self._on_toggle_organize,
            toggle_auto_save=self._on_toggle_auto_save,
            quit=self._on_quit,
        )
        self._hotkey_listener = None
        self._start_hotkey_listener()
        self._build_menu()

    def _start_hotkey_listener(self) -> None:
        try:
            from pynput import keyboard
        except ImportError:
            logger.warning("pynput not installed, global hotkey disabled")
            return

        self._hotkey_listener = keyboard.GlobalHotKeys({HOTKEY: self._on_hotkey})
        self._hotkey_listener.daemon = True
        self._hotkey_listener.start()
        logger.info("Listening for %s", HOTKEY)

    def _build_menu(self) -> None:
        self.menu.clear()
        self._capture_ids.clear()
        specs = compute_menu_specs(self._storage, self._actions)
        self.menu = [self._render_single_spec(spec) for spec in specs]

    def _render_single_spec(self, spec: MenuItemSpec | None) -> rumps.MenuItem | None:
        if spec is None:
            return None

        if spec.is_submenu and spec.children:
            submenu = rumps.MenuItem(spec.title)
            for child in spec.children:
                submenu.add(self._render_single_spec(child))
            return submenu

        item = rumps.MenuItem(spec.title, callback=spec.callback)
        if spec.state is not None:
            item.state = int(spec.state)
        if spec.key is not None:
            item._id = spec.key
            self._capture_ids[spec.key] = spec.capture_id
        return item

    @rumps.timer(POLL_INTERVAL)
    def _poll_clipboard(self, _sender) -> None:
        self._monitor.check_clipboard()
        self._drain_results()

    def _drain_results(self) -> None:
        summary = drain_results(self._pending)
        if summary.missing_folder:
            rumps.alert(NO_FOLDER_TITLE, NO_FOLDER_MESSAGE)
        if summary.refresh:
            self._build_menu()

    def _on_capture_result(self, trigger: CaptureTrigger, result: CaptureResult) -> None:
        self._pending.put((trigger, result))

    def _on_hotkey(self) -> None:
        self._monitor.dispatch(CaptureTrigger.MANUAL_SHORTCUT)

    def _on_save_selection(self, _sender) -> None:
        self._monitor.dispatch(CaptureTrigger.MANUAL_SHORTCUT)

    def _on_save_clipboard(self, _sender) -> None:
        self._monitor.dispatch(CaptureTrigger.MANUAL_SHORTCUT, self._pasteboard.read_payload())

    def _on_capture_click(self, sender) -> None:
        capture_id = self._capture_ids.get(getattr(sender, "_id", ""))
        if capture_id is None:
            return
        record = self._storage.get_capture(capture_id)
        if record is None:
            return
        if not Path(record.path).exists():
            rumps.notification("Second Brain", "", f"{record.filename} is no longer in the data folder", sound=False)
            return
        subprocess.run(["open", "-R", record.path], capture_output=True)

    def _on_clear_history(self, _sender) -> None:
        if rumps.alert("Second Brain", "Forget all saved captures? Files stay in the data folder.", ok="Clear", cancel="Cancel"):
            self._storage.clear_all()
            self._build_menu()

    def _on_configure_folder(self, _sender) -> None:
        response = rumps.Window(
            message="Folder to save captures into:",
            title="Configure Data Folder",
            default_text=self._storage.data_folder or str(Path.home() / "Documents"),
            ok="Select Folder",
            cancel="Cancel",
            dimensions=(320, 24),
        ).run()
        if not response.clicked or not response.text.strip():
            return

        folder = Path(response.text.strip()).expanduser()
        if not folder.is_dir():
            rumps.alert("Second Brain", f"{folder} is not a folder.")
            return
        self._storage.data_folder = folder
        self._build_menu()

    def _on_toggle_organize(self, sender) -> None:
        self._storage.organize_by_type = not self._storage.organize_by_type
        sender.state = int(self._storage.organize_by_type)

    def _on_toggle_auto_save(self, sender) -> None:
        enabled = not self._storage.auto_save
        self._storage.auto_save = enabled
        if enabled:
            # Only content copied from now on is saved
            self._monitor.sync_change_count()
        sender.state = int(enabled)

    def _on_quit(self, _sender) -> None:
        if self._hotkey_listener is not None:
            self._hotkey_listener.stop()
        self._monitor.shutdown()
        self._storage.close()
        rumps.quit_application()
