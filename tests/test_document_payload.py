"""Tests for turning uploads, bytes and paths into Gemini inline parts."""

import io
from types import SimpleNamespace

import pytest

from src.document_payload import (
    DEFAULT_MIME_TYPE,
    DocumentPayload,
    guess_mime_type,
    read_document,
)

PDF_BYTES = b"%PDF-1.4\n% fake pdf body"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


class TestGuessMimeType:

    @pytest.mark.parametrize("name,expected", [
        ("report.pdf", "application/pdf"),
        ("scan.PNG", "image/png"),
        ("photo.jpg", "image/jpeg"),
        ("to_khai.xml", "application/xml"),
        ("bctc.xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
        ("bctc.xls", "application/vnd.ms-excel"),
    ])
    def test_by_name(self, name, expected):
        assert guess_mime_type(name) == expected

    def test_by_magic_bytes(self):
        assert guess_mime_type("", PDF_BYTES) == "application/pdf"
        assert guess_mime_type("", PNG_BYTES) == "image/png"

    def test_unknown(self):
        assert guess_mime_type("", b"plain bytes") == DEFAULT_MIME_TYPE


class TestReadDocument:

    def test_uploaded_file_keeps_declared_type(self):
        upload = SimpleNamespace(getvalue=lambda: PDF_BYTES, name="dkkd.pdf", type="application/pdf")
        payload = read_document(upload)

        assert payload == DocumentPayload(data=PDF_BYTES, mime_type="application/pdf", name="dkkd.pdf")
        part = payload.to_part()
        assert part.inline_data.mime_type == "application/pdf"
        assert part.inline_data.data == PDF_BYTES

    def test_uploaded_file_without_type_is_guessed(self):
        upload = SimpleNamespace(getvalue=lambda: PNG_BYTES, name="scan.png", type=None)
        assert read_document(upload).mime_type == "image/png"

    def test_bytes(self):
        payload = read_document(PDF_BYTES)
        assert payload.mime_type == "application/pdf"
        assert payload.name == ""

    def test_explicit_mime_type_wins(self):
        assert read_document(PDF_BYTES, mime_type="image/jpeg").mime_type == "image/jpeg"

    def test_file_like(self):
        payload = read_document(io.BytesIO(PNG_BYTES))
        assert payload.data == PNG_BYTES
        assert payload.mime_type == "image/png"

    def test_path(self, tmp_path):
        path = tmp_path / "q1.xml"
        path.write_bytes(b"<?xml version='1.0'?><HSoThueDTu/>")
        payload = read_document(str(path))

        assert payload.name == "q1.xml"
        assert payload.mime_type == "application/xml"

    def test_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_document(tmp_path / "missing.pdf")

    @pytest.mark.parametrize("source", [b"", io.BytesIO(b"")])
    def test_empty_content_rejected(self, source):
        with pytest.raises(ValueError, match="empty"):
            read_document(source)
