import pytest

import uploads
from errors import UploadRejected
from uploads import (
    NO_TEXT_SENTINEL,
    SNIPPET_LIMIT,
    TRUNCATION_MARKER,
    load_upload,
    make_snippet,
)


class TestMakeSnippet:
    def test_long_text_is_capped_with_marker(self):
        """5000 characters become the first 2000 plus the truncation marker."""
        text = "".join(chr(ord("a") + i % 26) for i in range(5000))
        snippet = make_snippet(text)
        assert snippet == text[:SNIPPET_LIMIT] + TRUNCATION_MARKER

    @pytest.mark.parametrize("length", [0, 1, 1999, 2000])
    def test_short_text_never_marked(self, length):
        text = "x" * length
        assert make_snippet(text) == text

    def test_one_over_limit_is_marked(self):
        assert make_snippet("x" * 2001).endswith(TRUNCATION_MARKER)


class TestLoadUpload:
    def test_text_file(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("meeting notes", encoding="utf-8")
        uploaded = load_upload(str(path))
        assert uploaded.text == "meeting notes"
        assert uploaded.snippet == "meeting notes"
        assert uploaded.warning is None

    def test_pdf_uses_extractor(self, tmp_path):
        path = tmp_path / "paper.PDF"
        path.write_bytes(b"%PDF-1.4")
        uploaded = load_upload(str(path), pdf_extractor=lambda p: "y" * 2500)
        assert uploaded.snippet.endswith(TRUNCATION_MARKER)
        assert len(uploaded.text) == 2500

    def test_empty_extraction_uses_sentinel(self, tmp_path):
        """No text is a warning, not an error."""
        path = tmp_path / "scan.pdf"
        path.write_bytes(b"%PDF-1.4")
        uploaded = load_upload(str(path), pdf_extractor=lambda p: "")
        assert uploaded.snippet == NO_TEXT_SENTINEL
        assert "No text extracted" in uploaded.warning

    def test_missing_file_rejected(self, tmp_path):
        with pytest.raises(UploadRejected, match="File not found"):
            load_upload(str(tmp_path / "nope.txt"))

    def test_wrong_extension_rejected(self, tmp_path):
        path = tmp_path / "image.png"
        path.write_bytes(b"\x89PNG")
        with pytest.raises(UploadRejected, match="Only .pdf or .txt"):
            load_upload(str(path))

    def test_oversized_file_rejected(self, tmp_path, monkeypatch):
        path = tmp_path / "big.txt"
        path.write_text("0123456789", encoding="utf-8")
        monkeypatch.setattr(uploads, "MAX_UPLOAD_BYTES", 5)
        with pytest.raises(UploadRejected, match="20 MB"):
            load_upload(str(path))

    def test_broken_pdf_extracts_empty(self, tmp_path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"not really a pdf")
        assert uploads.extract_pdf_text(path) == ""
