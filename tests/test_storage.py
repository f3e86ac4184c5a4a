import threading
from datetime import datetime, timedelta

import pytest

from secondbrain.models import CaptureRecord, CaptureTrigger, ContentKind
from secondbrain.storage import StorageManager


@pytest.fixture
def make_record():
    """Factory fixture to create CaptureRecord instances for testing."""

    def _make_record(
        filename: str = "text_2024-05-17_09-30-15.txt",
        kind: ContentKind = ContentKind.PLAIN_TEXT,
        preview: str | None = "hello world",
        created_at: datetime | None = None,
    ) -> CaptureRecord:
        return CaptureRecord(
            id=None,
            kind=kind,
            category="Text",
            filename=filename,
            path=f"/tmp/brain/{filename}",
            preview=preview,
            trigger=CaptureTrigger.AUTO_POLL,
            created_at=created_at or datetime.now(),
        )

    return _make_record


class TestSettings:
    def test_defaults(self, storage):
        assert storage.data_folder is None
        assert storage.organize_by_type is True
        assert storage.auto_save is False

    def test_data_folder_roundtrip(self, storage, tmp_path):
        storage.data_folder = tmp_path
        assert storage.data_folder == str(tmp_path)

    def test_data_folder_cleared(self, storage, tmp_path):
        storage.data_folder = tmp_path
        storage.data_folder = None
        assert storage.data_folder is None

    def test_flags(self, storage):
        storage.organize_by_type = False
        storage.auto_save = True
        assert storage.organize_by_type is False
        assert storage.auto_save is True

    def test_set_overwrites(self, storage):
        storage.set_setting("k", "1")
        storage.set_setting("k", "2")
        assert storage.get_setting("k") == "2"

    def test_get_default(self, storage):
        assert storage.get_setting("missing", "fallback") == "fallback"

    def test_persisted_across_connections(self, tmp_path):
        db = tmp_path / "test.db"
        with StorageManager(db) as first:
            first.data_folder = tmp_path
            first.auto_save = True
        with StorageManager(db) as second:
            assert second.data_folder == str(tmp_path)
            assert second.auto_save is True


class TestCaptureHistory:
    def test_add_capture(self, storage, make_record):
        capture_id = storage.add_capture(make_record())
        assert capture_id > 0
        assert storage.count() == 1

    def test_get_capture(self, storage, make_record):
        capture_id = storage.add_capture(make_record(preview="find me"))
        found = storage.get_capture(capture_id)
        assert found.preview == "find me"
        assert found.kind == ContentKind.PLAIN_TEXT
        assert found.trigger == CaptureTrigger.AUTO_POLL

    def test_get_capture_not_found(self, storage):
        assert storage.get_capture(99999) is None

    def test_get_recent_newest_first(self, storage, make_record):
        now = datetime.now()
        storage.add_capture(make_record("old.txt", created_at=now - timedelta(minutes=5)))
        storage.add_capture(make_record("new.txt", created_at=now))
        names = [r.filename for r in storage.get_recent()]
        assert names == ["new.txt", "old.txt"]

    def test_get_recent_limit(self, storage, make_record):
        for i in range(10):
            storage.add_capture(make_record(f"f{i}.txt"))
        assert len(storage.get_recent(limit=3)) == 3

    def test_search_preview(self, storage, make_record):
        storage.add_capture(make_record("a.txt", preview="invoice for march"))
        storage.add_capture(make_record("b.txt", preview="grocery list"))
        results = storage.search("invoice")
        assert [r.filename for r in results] == ["a.txt"]

    def test_search_filename(self, storage, make_record):
        storage.add_capture(make_record("quarterly_2024-05-17_09-30-15.pdf", kind=ContentKind.SINGLE_FILE, preview=None))
        results = storage.search("quarterly")
        assert len(results) == 1
        assert results[0].preview is None

    def test_search_special_characters(self, storage, make_record):
        storage.add_capture(make_record(preview='say "hi" (now)'))
        assert len(storage.search('"hi" (now')) == 1

    def test_search_empty_query(self, storage, make_record):
        storage.add_capture(make_record())
        assert storage.search("   ") == []

    def test_purge_old(self, storage, make_record):
        now = datetime.now()
        for i in range(5):
            storage.add_capture(make_record(f"f{i}.txt", created_at=now + timedelta(seconds=i)))
        deleted = storage.purge_old(keep_count=2)
        assert deleted == 3
        assert [r.filename for r in storage.get_recent()] == ["f4.txt", "f3.txt"]

    def test_purge_removes_from_search(self, storage, make_record):
        now = datetime.now()
        storage.add_capture(make_record("a.txt", preview="needle", created_at=now - timedelta(days=1)))
        storage.add_capture(make_record("b.txt", preview="haystack", created_at=now))
        storage.purge_old(keep_count=1)
        assert storage.search("needle") == []

    def test_clear_all(self, storage, make_record):
        storage.add_capture(make_record())
        storage.clear_all()
        assert storage.count() == 0


class TestConcurrentAccess:
    def test_worker_and_menu_threads_share_connection(self, tmp_path, make_record):
        storage = StorageManager(tmp_path / "shared.db")
        errors = []

        def capture_worker():
            try:
                for i in range(50):
                    storage.add_capture(make_record(filename=f"text_{i}.txt"))
                    storage.purge_old(keep_count=20)
            except Exception as e:
                errors.append(e)

        def menu_thread():
            try:
                for i in range(50):
                    storage.organize_by_type = i % 2 == 0
                    storage.get_recent(limit=10)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=capture_worker), threading.Thread(target=menu_thread)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        assert storage.count() == 20
        assert storage.organize_by_type is False
        storage.close()

    def test_purge_waits_for_other_thread(self, storage, make_record):
        for i in range(5):
            storage.add_capture(make_record(filename=f"text_{i}.txt"))

        with storage._lock:
            result = {}
            purger = threading.Thread(target=lambda: result.setdefault("purged", storage.purge_old(keep_count=1)))
            purger.start()
            purger.join(timeout=0.2)
            # Blocked until the other unit of work releases the connection
            assert purger.is_alive()

        purger.join(timeout=5)
        assert result["purged"] == 4
        assert storage.count() == 1


class TestSanitizeFtsQuery:
    def test_quotes_tokens(self):
        assert StorageManager._sanitize_fts_query("foo bar") == '"foo" "bar"'

    def test_escapes_quotes(self):
        assert StorageManager._sanitize_fts_query('a"b') == '"a""b"'

    def test_empty(self):
        assert StorageManager._sanitize_fts_query("") == ""
