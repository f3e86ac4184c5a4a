import logging
import os
from pathlib import Path
from typing import Protocol

from secondbrain.errors import NoRootConfigured, ResolutionFailed
from secondbrain.storage import StorageManager

logger = logging.getLogger(__name__)


class RootHandle:
    """Access to the data folder for the duration of one capture."""

    def __init__(self, path: Path):
        self.path = path
        self.released = False

    def release(self) -> None:
        self.released = True

    def __enter__(self) -> "RootHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


class StorageRoot(Protocol):
    def resolve(self) -> RootHandle: ...

    def clear(self) -> None: ...


class FolderStorageRoot:
    """Resolves the data folder remembered in the settings table.

    The folder is looked up again on every capture, since the user may have
    moved, deleted or locked it since the last one.
    """

    def __init__(self, storage: StorageManager):
        self._storage = storage

    def resolve(self) -> RootHandle:
        folder = self._storage.data_folder
        if not folder:
            raise NoRootConfigured("No data folder configured")

        path = Path(folder).expanduser()
        if not path.is_dir():
            raise ResolutionFailed(f"Data folder not found: {path}")
        if not os.access(path, os.W_OK):
            raise ResolutionFailed(f"Data folder is not writable: {path}")
        return RootHandle(path)

    def clear(self) -> None:
        logger.info("Forgetting data folder %s", self._storage.data_folder)
        self._storage.data_folder = None


class FixedStorageRoot:
    """A storage root pinned to one folder, used by the command line."""

    def __init__(self, path: str | Path):
        self._path = Path(path).expanduser()

    def resolve(self) -> RootHandle:
        if not self._path.is_dir():
            raise ResolutionFailed(f"Data folder not found: {self._path}")
        return RootHandle(self._path)

    def clear(self) -> None:
        pass
