"""Menu contents and capture result handling for the menu bar app."""

import queue
from collections.abc import Callable
from dataclasses import dataclass

from secondbrain import __version__
from secondbrain.config import MENU_HISTORY_COUNT
from secondbrain.models import CaptureRecord, CaptureResult, CaptureTrigger, FailureReason
from secondbrain.storage import StorageManager
from secondbrain.utils import truncate_text

ENTRY_KEY_PREFIX = "secondbrain_capture_"


@dataclass
class MenuItemSpec:
    """Specification for a menu item, separating logic from rumps rendering."""

    title: str
    callback: Callable | None = None
    state: bool | None = None
    capture_id: int | None = None
    is_submenu: bool = False
    children: list["MenuItemSpec | None"] | None = None

    @property
    def key(self) -> str | None:
        return f"{ENTRY_KEY_PREFIX}{self.capture_id}" if self.capture_id is not None else None


@dataclass
class MenuActions:
    save_selection: Callable | None = None
    save_clipboard: Callable | None = None
    open_capture: Callable | None = None
    clear_history: Callable | None = None
    configure_folder: Callable | None = None
    toggle_organize: Callable | None = None
    toggle_auto_save: Callable | None = None
    quit: Callable | None = None


@dataclass
class DrainSummary:
    refresh: bool = False
    missing_folder: bool = False


def capture_title(record: CaptureRecord) -> str:
    return f"{record.category}: {truncate_text(record.preview or record.filename, 50)}"


def compute_menu_specs(
    storage: StorageManager,
    actions: MenuActions,
    history_count: int = MENU_HISTORY_COUNT,
) -> list[MenuItemSpec | None]:
    """Compute menu item specifications. Pure logic, no rumps dependency."""
    folder = storage.data_folder
    specs: list[MenuItemSpec | None] = [
        MenuItemSpec(f"Second Brain v{__version__}"),
        None,
        MenuItemSpec("Save Selection", callback=actions.save_selection),
        MenuItemSpec("Save Current Clipboard", callback=actions.save_clipboard),
        None,
    ]

    recent = storage.get_recent(limit=history_count)
    if recent:
        children: list[MenuItemSpec | None] = [
            MenuItemSpec(capture_title(r), callback=actions.open_capture, capture_id=r.id) for r in recent
        ]
        children.append(None)
        children.append(MenuItemSpec("Clear History", callback=actions.clear_history))
        specs.append(MenuItemSpec("Recent Captures", is_submenu=True, children=children))
    else:
        specs.append(MenuItemSpec("(Nothing saved yet)"))

    specs.extend([
        None,
        MenuItemSpec(f"Data Folder: {folder}" if folder else "Data Folder: (not set)"),
        MenuItemSpec("Configure Data Folder...", callback=actions.configure_folder),
        MenuItemSpec("Organize by file type", callback=actions.toggle_organize, state=storage.organize_by_type),
        MenuItemSpec("Auto-save clipboard", callback=actions.toggle_auto_save, state=storage.auto_save),
        None,
        MenuItemSpec("Quit Second Brain", callback=actions.quit),
    ])
    return specs


def drain_results(pending: "queue.SimpleQueue[tuple[CaptureTrigger, CaptureResult]]") -> DrainSummary:
    """Empty ``pending`` and decide what the menu bar has to do about it.

    Successes and a forgotten data folder change the menu. A missing folder is
    only worth an alert when the user asked for the capture; auto-save stays
    silent.
    """
    summary = DrainSummary()
    while True:
        try:
            trigger, result = pending.get_nowait()
        except queue.Empty:
            break
        if result.success:
            summary.refresh = True
        elif result.failure == FailureReason.NO_ROOT_CONFIGURED and trigger != CaptureTrigger.AUTO_POLL:
            summary.missing_folder = True
        elif result.failure == FailureReason.RESOLUTION_FAILED:
            summary.refresh = True
    return summary
