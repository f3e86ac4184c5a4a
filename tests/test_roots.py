import os

import pytest

from secondbrain.errors import NoRootConfigured, ResolutionFailed
from secondbrain.roots import FixedStorageRoot, FolderStorageRoot, RootHandle


class TestFolderStorageRoot:
    def test_not_configured(self, storage):
        with pytest.raises(NoRootConfigured):
            FolderStorageRoot(storage).resolve()

    def test_resolves_configured_folder(self, storage, tmp_path):
        storage.data_folder = tmp_path
        handle = FolderStorageRoot(storage).resolve()
        assert handle.path == tmp_path
        assert handle.released is False

    def test_missing_folder(self, storage, tmp_path):
        storage.data_folder = tmp_path / "deleted"
        with pytest.raises(ResolutionFailed):
            FolderStorageRoot(storage).resolve()

    def test_file_instead_of_folder(self, storage, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")
        storage.data_folder = path
        with pytest.raises(ResolutionFailed):
            FolderStorageRoot(storage).resolve()

    @pytest.mark.skipif(os.geteuid() == 0, reason="root can write anywhere")
    def test_read_only_folder(self, storage, tmp_path):
        folder = tmp_path / "locked"
        folder.mkdir()
        folder.chmod(0o500)
        storage.data_folder = folder
        try:
            with pytest.raises(ResolutionFailed):
                FolderStorageRoot(storage).resolve()
        finally:
            folder.chmod(0o700)

    def test_clear_forgets_folder(self, storage, tmp_path):
        storage.data_folder = tmp_path
        FolderStorageRoot(storage).clear()
        assert storage.data_folder is None

    def test_resolved_fresh_each_time(self, storage, tmp_path):
        root = FolderStorageRoot(storage)
        storage.data_folder = tmp_path
        assert root.resolve().path == tmp_path

        storage.data_folder = None
        with pytest.raises(NoRootConfigured):
            root.resolve()


class TestFixedStorageRoot:
    def test_resolves(self, tmp_path):
        assert FixedStorageRoot(tmp_path).resolve().path == tmp_path

    def test_missing(self, tmp_path):
        with pytest.raises(ResolutionFailed):
            FixedStorageRoot(tmp_path / "nope").resolve()


class TestRootHandle:
    def test_context_manager_releases(self, tmp_path):
        with RootHandle(tmp_path) as handle:
            assert handle.released is False
        assert handle.released is True

    def test_released_on_exception(self, tmp_path):
        handle = RootHandle(tmp_path)
        with pytest.raises(ValueError):
            with handle:
                raise ValueError("boom")
        assert handle.released is True
