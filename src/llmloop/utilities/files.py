import base64
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# (signature, offset, mime); checked in order
_MAGIC = [
    (b"\x89PNG\r\n\x1a\n", 0, "image/png"),
    (b"\xff\xd8\xff", 0, "image/jpeg"),
    (b"GIF87a", 0, "image/gif"),
    (b"GIF89a", 0, "image/gif"),
    (b"BM", 0, "image/bmp"),
    (b"II*\x00", 0, "image/tiff"),
    (b"MM\x00*", 0, "image/tiff"),
    (b"\x00\x00\x01\x00", 0, "image/x-icon"),
]


def sniff_image_mime(data: bytes) -> str:
    """Identify an image MIME type from its leading magic bytes.

    Raises
    ------
    ValueError
        If the data is too short to identify, or the format is not supported.
    """
    if len(data) < 8:
        raise ValueError("File too small. Cannot automatically decide file type")

    header = data[:12]
    if header.startswith(b"RIFF") and header[8:12] == b"WEBP":
        return "image/webp"
    for signature, offset, mime in _MAGIC:
        if header[offset:].startswith(signature):
            return mime
    raise ValueError("Unsupported file type")


def data_url_from_file(path: str | Path, mime: str | None = None) -> str:
    """Read a file and encode it as a base64 data url.

    The MIME type is sniffed from the file content when not given.
    """
    data = Path(path).read_bytes()
    if not mime:
        mime = sniff_image_mime(data)
    logger.debug(f"Encoding {path} ({len(data)} bytes) as {mime}")
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"
