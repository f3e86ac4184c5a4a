import argparse
import logging
import subprocess
import sys
from pathlib import Path

from secondbrain.config import DATA_DIR, DB_PATH, LOG_PATH
from secondbrain.models import CaptureResult, CaptureTrigger, ClipboardPayload, FailureReason
from secondbrain.notify import build_message
from secondbrain.roots import FixedStorageRoot, FolderStorageRoot
from secondbrain.service import ClipboardCaptureService
from secondbrain.storage import StorageManager
from secondbrain.utils import ensure_dirs

PLIST_NAME = "com.secondbrain.app.plist"
LAUNCHAGENT_DIR = Path.home() / "Library" / "LaunchAgents"
PLIST_PATH = LAUNCHAGENT_DIR / PLIST_NAME

FAILURE_MESSAGES = {
    FailureReason.NO_ROOT_CONFIGURED: "No data folder configured. Run: secondbrain config --folder DIR",
    FailureReason.RESOLUTION_FAILED: "The data folder is no longer available; it has been forgotten. Configure it again.",
    FailureReason.UNRECOGNIZED_CONTENT: "Nothing to save: no supported content found.",
    FailureReason.PERSISTENCE_FAILURE: "Failed to save content (see log for details).",
}


def get_secondbrain_path() -> str:
    """Get the path to the secondbrain executable."""
    import shutil

    secondbrain_path = shutil.which("secondbrain")
    if secondbrain_path:
        return secondbrain_path
    return f"{sys.executable} -m secondbrain"


def create_plist(secondbrain_path: str) -> str:
    """Generate the LaunchAgent plist content."""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
    <key>Label</key>
    <string>com.secondbrain.app</string>
    <key>ProgramArguments</key>
    <array>
        <string>{secondbrain_path}</string>
    </array>
    <key>RunAtLoad</key>
    <true/>
    <key>KeepAlive</key>
    <true/>
    <key>StandardOutPath</key>
    <string>{DATA_DIR}/secondbrain.log</string>
    <key>StandardErrorPath</key>
    <string>{DATA_DIR}/secondbrain.log</string>
</dict>
</plist>
"""


def install_launchagent() -> int:
    """Install and start the LaunchAgent."""
    ensure_dirs()

    secondbrain_path = get_secondbrain_path()
    print(f"Installing LaunchAgent for: {secondbrain_path}")

    LAUNCHAGENT_DIR.mkdir(parents=True, exist_ok=True)

    if PLIST_PATH.exists():
        subprocess.run(
            ["launchctl", "unload", str(PLIST_PATH)],
            capture_output=True,
        )

    PLIST_PATH.write_text(create_plist(secondbrain_path))
    print(f"Created: {PLIST_PATH}")

    result = subprocess.run(
        ["launchctl", "load", str(PLIST_PATH)],
        capture_output=True,
        text=True,
    )

    if result.returncode == 0:
        print("Second Brain is now running in the menu bar.")
        print("It will start automatically on login.")
        return 0
    else:
        print(f"Failed to load LaunchAgent: {result.stderr}")
        return 1


def uninstall_launchagent() -> int:
    """Stop and remove the LaunchAgent."""
    if not PLIST_PATH.exists():
        print("LaunchAgent not installed.")
        return 0

    subprocess.run(
        ["launchctl", "unload", str(PLIST_PATH)],
        capture_output=True,
    )

    PLIST_PATH.unlink()
    print("LaunchAgent uninstalled.")
    print("Second Brain will no longer start on login.")
    return 0


def check_status() -> int:
    """Check if Second Brain is running."""
    result = subprocess.run(
        ["launchctl", "list", "com.secondbrain.app"],
        capture_output=True,
        text=True,
    )

    if result.returncode == 0:
        print("Second Brain is running.")
        if PLIST_PATH.exists():
            print(f"LaunchAgent: {PLIST_PATH}")
        return 0
    else:
        print("Second Brain is not running.")
        if PLIST_PATH.exists():
            print(f"LaunchAgent installed but not loaded: {PLIST_PATH}")
        else:
            print("LaunchAgent not installed. Run: secondbrain install")
        return 1


def report_result(result: CaptureResult) -> int:
    if result.success:
        _, body = build_message(result)
        print(body)
        for path in result.saved_paths:
            print(f"  {path}")
        return 0
    print(FAILURE_MESSAGES.get(result.failure, "Capture failed."))
    return 1


def drop(paths: list[str], text: str | None = None, folder: str | None = None) -> int:
    """Save files or text as if they had been dropped on the app."""
    if text is not None:
        payload = ClipboardPayload.from_text(text)
    elif paths:
        payload = ClipboardPayload.from_files([str(Path(p).expanduser().resolve()) for p in paths])
    else:
        print("Nothing to drop: pass file paths or --text.")
        return 2

    ensure_dirs()
    with StorageManager(DB_PATH) as storage:
        service = ClipboardCaptureService(
            FolderStorageRoot(storage),
            history=storage,
            organize_by_type=storage.organize_by_type,
        )
        root = FixedStorageRoot(folder) if folder else None
        result = service.capture(CaptureTrigger.DROP, payload, root=root)
    return report_result(result)


def save_clipboard() -> int:
    """Save whatever is on the clipboard right now."""
    from secondbrain.pasteboard import MacPasteboard

    ensure_dirs()
    pasteboard = MacPasteboard()
    with StorageManager(DB_PATH) as storage:
        service = ClipboardCaptureService(
            FolderStorageRoot(storage),
            clipboard=pasteboard,
            history=storage,
            organize_by_type=storage.organize_by_type,
        )
        result = service.capture(CaptureTrigger.MANUAL_SHORTCUT, pasteboard.read_payload())
    return report_result(result)


def configure(folder: str | None = None, organize: bool | None = None, auto_save: bool | None = None) -> int:
    """Show or change the persistent settings."""
    ensure_dirs()
    with StorageManager(DB_PATH) as storage:
        if folder is not None:
            path = Path(folder).expanduser().resolve()
            if not path.is_dir():
                print(f"Not a folder: {path}")
                return 1
            storage.data_folder = path
        if organize is not None:
            storage.organize_by_type = organize
        if auto_save is not None:
            storage.auto_save = auto_save

        print(f"Data folder:      {storage.data_folder or '(not set)'}")
        print(f"Organize by type: {'on' if storage.organize_by_type else 'off'}")
        print(f"Auto-save:        {'on' if storage.auto_save else 'off'}")
    return 0


def show_history(query: str | None = None, limit: int = 20) -> int:
    """List recent captures, optionally filtered by a search query."""
    ensure_dirs()
    with StorageManager(DB_PATH) as storage:
        records = storage.search(query, limit=limit) if query else storage.get_recent(limit=limit)

    if not records:
        print(f'No captures matching "{query}"' if query else "No captures yet.")
        return 0
    for record in records:
        print(f"{record.created_at:%Y-%m-%d %H:%M:%S}  {record.category:<14} {record.path}")
    return 0


def run_app():
    """Run the Second Brain menu bar application."""
    ensure_dirs()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(LOG_PATH),
            logging.StreamHandler(sys.stderr),
        ],
    )

    from secondbrain.app import SecondBrainApp

    app = SecondBrainApp()
    app.run()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secondbrain",
        description="Second Brain - file clipboard content into a folder, sorted by type",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  (none)      Run Second Brain in the menu bar
  install     Install as LaunchAgent (runs on login)
  uninstall   Remove LaunchAgent
  status      Check if Second Brain is running
  drop        Save files or text into the data folder
  save        Save the current clipboard
  config      Show or change settings
  history     List or search saved captures

Examples:
  secondbrain config --folder ~/Brain --organize
  secondbrain drop ~/Downloads/report.pdf notes.md
  secondbrain drop --text "remember the milk"
  secondbrain history invoice
""",
    )
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("install", help="Install as LaunchAgent")
    sub.add_parser("uninstall", help="Remove LaunchAgent")
    sub.add_parser("status", help="Check if Second Brain is running")

    drop_parser = sub.add_parser("drop", help="Save files or text into the data folder")
    drop_parser.add_argument("paths", nargs="*", help="Files or folders to save")
    drop_parser.add_argument("--text", help="Save this text instead of files")
    drop_parser.add_argument("--folder", help="Save into this folder instead of the configured one")

    sub.add_parser("save", help="Save the current clipboard")

    config_parser = sub.add_parser("config", help="Show or change settings")
    config_parser.add_argument("--folder", help="Data folder to save captures into")
    config_parser.add_argument("--organize", action=argparse.BooleanOptionalAction, default=None,
                               help="Sort captures into subfolders by type")
    config_parser.add_argument("--auto-save", action=argparse.BooleanOptionalAction, default=None,
                               help="Save every clipboard change automatically")

    history_parser = sub.add_parser("history", help="List or search saved captures")
    history_parser.add_argument("query", nargs="?", help="Search filenames and text previews")
    history_parser.add_argument("--limit", type=int, default=20)
    return parser


def main():
    args = build_parser().parse_args()

    if args.command == "install":
        sys.exit(install_launchagent())
    elif args.command == "uninstall":
        sys.exit(uninstall_launchagent())
    elif args.command == "status":
        sys.exit(check_status())
    elif args.command == "drop":
        sys.exit(drop(args.paths, text=args.text, folder=args.folder))
    elif args.command == "save":
        sys.exit(save_clipboard())
    elif args.command == "config":
        sys.exit(configure(args.folder, organize=args.organize, auto_save=args.auto_save))
    elif args.command == "history":
        sys.exit(show_history(args.query, limit=args.limit))
    else:
        run_app()


if __name__ == "__main__":
    main()
