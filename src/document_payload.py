"""
    01 document payload

document_payload.py

Turns whatever the page hands us into the (bytes, MIME type) pair that is sent
to Gemini as an inline part. Nothing is converted: the bytes are forwarded as-is.

Accepts:
 * a Streamlit UploadedFile (detected by duck typing: getvalue() + name/type)
 * bytes / bytearray
 * a file-like object with read()
 * a filesystem path (str or pathlib.Path)
"""

from __future__ import annotations

import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from google.genai import types

logger = logging.getLogger("gemini_service.payload")

ACCEPTED_EXTENSIONS = ["pdf", "jpg", "jpeg", "png", "xml", "xlsx", "xls"]
DEFAULT_MIME_TYPE = "application/octet-stream"

# Extensions mimetypes does not know on every platform
_EXTRA_MIME_TYPES = {
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xls": "application/vnd.ms-excel",
    ".xml": "application/xml",
}

_MAGIC_MIME_TYPES = (
    (b"%PDF", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"PK\x03\x04", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
    (b"\xd0\xcf\x11\xe0", "application/vnd.ms-excel"),
    (b"<?xml", "application/xml"),
)


@dataclass(frozen=True)
class DocumentPayload:
    data: bytes
    mime_type: str
    name: str = ""

    def to_part(self) -> types.Part:
        """Inline blob part for client.models.generate_content."""
        return types.Part.from_bytes(data=self.data, mime_type=self.mime_type)


def guess_mime_type(name: str = "", data: bytes = b"") -> str:
    """Guess from the file name first, then from the leading magic bytes."""
    if name:
        suffix = Path(name).suffix.lower()
        if suffix in _EXTRA_MIME_TYPES:
            return _EXTRA_MIME_TYPES[suffix]
        guessed, _ = mimetypes.guess_type(name)
        if guessed:
            return guessed
    header = bytes(data[:8])
    for magic, mime_type in _MAGIC_MIME_TYPES:
        if header.startswith(magic):
            return mime_type
    return DEFAULT_MIME_TYPE


def _is_uploaded_file(obj: Any) -> bool:
    # Streamlit's UploadedFile is a BytesIO subclass carrying name/type
    return callable(getattr(obj, "getvalue", None)) and hasattr(obj, "name")


def read_document(
    path_or_file: Union[str, Path, bytes, bytearray, io.IOBase, Any],
    mime_type: Optional[str] = None,
) -> DocumentPayload:
    """
    Read the document content and resolve its MIME type.
    Raises FileNotFoundError for missing paths and ValueError for empty content.
    """
    name = ""
    declared = mime_type

    if isinstance(path_or_file, (bytes, bytearray)):
        data = bytes(path_or_file)
    elif _is_uploaded_file(path_or_file):
        data = bytes(path_or_file.getvalue())
        name = getattr(path_or_file, "name", "") or ""
        declared = declared or getattr(path_or_file, "type", None)
    elif hasattr(path_or_file, "read") and not isinstance(path_or_file, (str, Path)):
        data = path_or_file.read()
        if isinstance(data, str):
            data = data.encode("utf-8")
        name = getattr(path_or_file, "name", "") or ""
        if not isinstance(name, str):
            name = ""
    else:
        p = Path(str(path_or_file).replace("\\", "/"))
        if not p.exists():
            raise FileNotFoundError(f"Input not found: {path_or_file} (cwd: {Path.cwd()})")
        data = p.read_bytes()
        name = p.name

    if not data:
        raise ValueError("File reading failed: result is empty")

    resolved = declared or guess_mime_type(name, data)
    logger.debug("Prepared document %r (%d bytes, %s)", name or "<bytes>", len(data), resolved)
    return DocumentPayload(data=data, mime_type=resolved, name=Path(name).name if name else "")
