import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("SECONDBRAIN_DATA_DIR", Path.home() / ".local" / "share" / "secondbrain"))
DB_PATH = DATA_DIR / "secondbrain.db"
LOG_PATH = DATA_DIR / "secondbrain.log"


def _parse_poll_interval() -> float:
    raw = os.environ.get("SECONDBRAIN_POLL_INTERVAL")
    if raw is None:
        return 0.5
    try:
        value = float(raw)
    except ValueError:
        return 0.5
    return max(0.1, min(5.0, value))


POLL_INTERVAL = _parse_poll_interval()  # seconds between clipboard checks
COPY_TIMEOUT = 0.5  # seconds to wait for the simulated copy to land
HOTKEY = "<cmd>+<ctrl>+s"
MAX_HISTORY = 500  # capture log auto-purge threshold
MENU_HISTORY_COUNT = 10
PREVIEW_WORDS = 5
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"
NOTIFICATION_TITLE = "Saved to your second brain!"
