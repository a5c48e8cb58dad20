import base64

import pytest

from llmloop.utilities.files import data_url_from_file, sniff_image_mime

PADDING = b"\x00" * 16


class TestSniffImageMime:
    @pytest.mark.parametrize(
        "header, mime",
        [
            (b"\x89PNG\r\n\x1a\n", "image/png"),
            (b"\xff\xd8\xff\xe0", "image/jpeg"),
            (b"GIF87a", "image/gif"),
            (b"GIF89a", "image/gif"),
            (b"BM", "image/bmp"),
            (b"RIFF\x24\x00\x00\x00WEBP", "image/webp"),
            (b"II*\x00", "image/tiff"),
            (b"MM\x00*", "image/tiff"),
            (b"\x00\x00\x01\x00", "image/x-icon"),
        ],
    )
    def test_sniff(self, header, mime):
        assert sniff_image_mime(header + PADDING) == mime

    def test_too_small(self):
        with pytest.raises(ValueError, match="File too small"):
            sniff_image_mime(b"\x89PNG")

    def test_unsupported(self):
        with pytest.raises(ValueError, match="Unsupported file type"):
            sniff_image_mime(b"%PDF-1.7" + PADDING)

    def test_riff_without_webp(self):
        with pytest.raises(ValueError):
            sniff_image_mime(b"RIFF\x24\x00\x00\x00WAVE" + PADDING)


class TestDataUrlFromFile:
    def test_sniffed(self, tmp_path):
        data = b"GIF89a" + PADDING
        path = tmp_path / "anim.gif"
        path.write_bytes(data)
        assert data_url_from_file(path) == "data:image/gif;base64," + base64.b64encode(data).decode()

    def test_explicit_mime(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_bytes(b"hi")
        assert data_url_from_file(str(path), mime="text/plain") == "data:text/plain;base64,aGk="

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            data_url_from_file(tmp_path / "missing.png")
