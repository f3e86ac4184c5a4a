from datetime import datetime
from io import BytesIO
from unittest.mock import patch

from PIL import Image

from secondbrain.utils import ensure_dirs, format_timestamp, text_preview, to_png, truncate_text


class TestTextPreview:
    def test_truncated_to_five_words(self):
        assert text_preview("The quick brown fox jumps over the lazy dog") == "The quick brown fox jumps..."

    def test_short_text_no_ellipsis(self):
        assert text_preview("remember the milk") == "remember the milk"

    def test_exactly_five_words(self):
        assert text_preview("one two three four five") == "one two three four five"

    def test_whitespace_collapsed(self):
        assert text_preview("  line one\n\nline   two\t") == "line one line two"

    def test_empty(self):
        assert text_preview("") == "Text snippet"

    def test_whitespace_only(self):
        assert text_preview(" \n\t ") == "Text snippet"

    def test_custom_word_count(self):
        assert text_preview("a b c", max_words=2) == "a b..."


class TestTruncateText:
    def test_short_text_unchanged(self):
        assert truncate_text("hello", 60) == "hello"

    def test_long_text_truncated(self):
        result = truncate_text("a" * 100, 60)
        assert len(result) == 60
        assert result.endswith("...")

    def test_multiline_collapsed(self):
        assert truncate_text("hello\nworld\nfoo", 60) == "hello world foo"


class TestFormatTimestamp:
    def test_format(self):
        assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02_03-04-05"


class TestToPng:
    def test_png_passthrough(self, make_image):
        png = to_png(make_image("PNG", size=(3, 2)))
        assert png.startswith(b"\x89PNG\r\n\x1a\n")
        with Image.open(BytesIO(png)) as img:
            assert img.size == (3, 2)

    def test_tiff_converted(self, make_image):
        png = to_png(make_image("TIFF", size=(10, 8)))
        with Image.open(BytesIO(png)) as img:
            assert img.format == "PNG"
            assert img.size == (10, 8)

    def test_cmyk_converted(self, make_image):
        png = to_png(make_image("JPEG", mode="CMYK"))
        with Image.open(BytesIO(png)) as img:
            assert img.format == "PNG"
            assert img.mode == "RGBA"

    def test_invalid_data(self):
        assert to_png(b"not an image") is None

    def test_empty(self):
        assert to_png(b"") is None

    def test_truncated_image(self, make_image):
        data = make_image("PNG", size=(64, 64))
        assert to_png(data[:40]) is None


class TestEnsureDirs:
    def test_creates_directory(self, tmp_path):
        data_dir = tmp_path / "data"
        with patch("secondbrain.utils.DATA_DIR", data_dir):
            ensure_dirs()
        assert data_dir.exists()

    def test_idempotent(self, tmp_path):
        data_dir = tmp_path / "data"
        with patch("secondbrain.utils.DATA_DIR", data_dir):
            ensure_dirs()
            ensure_dirs()  # Should not raise
        assert data_dir.exists()
