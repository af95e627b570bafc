"""Embed the generation prompt into image metadata

The image data itself is never decoded or re-encoded: new metadata segments
are spliced into the existing JPEG marker / PNG chunk stream.
"""
import io
import struct
from typing import Callable, List, Tuple

from PIL import Image, PngImagePlugin, UnidentifiedImageError

from utils.logging_config import get_logger

logger = get_logger(__name__)

# Exif tags in IFD0
IMAGE_DESCRIPTION_TAG = 0x010E
ARTIST_TAG = 0x013B

ARTIST = "Stable Diffusion"

EXIF_HEADER = b"Exif\x00\x00"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

JPEG_SOI = b"\xff\xd8"
JPEG_APP0 = 0xE0
JPEG_APP1 = 0xE1
JPEG_COM = 0xFE

# PNG text keywords this module owns
PNG_TEXT_KEYWORDS = (b"Artist", b"Description")


class MetadataError(Exception):
    """Raised when the image bytes cannot be parsed or re-written"""
    pass


def _check_format(img_bytes: bytes, expected_format: str) -> None:
    # Image.open only reads the header, pixels stay untouched
    try:
        with Image.open(io.BytesIO(img_bytes)) as image:
            found = image.format
    except (UnidentifiedImageError, OSError) as e:
        raise MetadataError(f"failed to parse image: {e}") from e

    if found != expected_format:
        raise MetadataError(f"expected a {expected_format} image, got {found}")


def build_exif(prompt: str) -> bytes:
    """A fresh Exif block (with the Exif\\0\\0 header) holding Artist and ImageDescription"""
    exif = Image.Exif()
    exif[ARTIST_TAG] = ARTIST
    exif[IMAGE_DESCRIPTION_TAG] = prompt

    data = exif.tobytes()
    if not data.startswith(EXIF_HEADER):
        data = EXIF_HEADER + data
    return data


def _jpeg_segments(img_bytes: bytes) -> Tuple[List[Tuple[int, bytes]], int]:
    """Split the leading APPn/COM segments off a JPEG, returning them and where the rest starts"""
    segments = []
    pos = len(JPEG_SOI)

    while pos + 4 <= len(img_bytes) and img_bytes[pos] == 0xFF:
        marker = img_bytes[pos + 1]
        if not (JPEG_APP0 <= marker <= 0xEF or marker == JPEG_COM):
            break

        (length,) = struct.unpack(">H", img_bytes[pos + 2:pos + 4])
        end = pos + 2 + length
        if length < 2 or end > len(img_bytes):
            raise MetadataError(f"truncated JPEG segment 0x{marker:02X} at offset {pos}")

        segments.append((marker, img_bytes[pos:end]))
        pos = end

    return segments, pos


def add_to_jpeg(img_bytes: bytes, prompt: str) -> bytes:
    """Tag a JPEG with the prompt as Exif ImageDescription, replacing any existing Exif segment"""
    _check_format(img_bytes, "JPEG")

    payload = build_exif(prompt)
    if len(payload) + 2 > 0xFFFF:
        raise MetadataError(f"Exif data of {len(payload)} bytes does not fit in a JPEG segment")
    app1 = struct.pack(">BBH", 0xFF, JPEG_APP1, len(payload) + 2) + payload

    segments, rest = _jpeg_segments(img_bytes)

    out = io.BytesIO()
    out.write(JPEG_SOI)

    # JFIF has to stay the first segment
    inserted = False
    for marker, segment in segments:
        if marker == JPEG_APP1 and segment[4:].startswith(EXIF_HEADER):
            continue
        if not inserted and marker != JPEG_APP0:
            out.write(app1)
            inserted = True
        out.write(segment)

    if not inserted:
        out.write(app1)

    out.write(img_bytes[rest:])
    return out.getvalue()


def _png_chunks(img_bytes: bytes) -> List[Tuple[bytes, bytes]]:
    """Split a PNG into (type, raw chunk bytes) pairs"""
    chunks = []
    pos = len(PNG_SIGNATURE)

    while pos < len(img_bytes):
        if pos + 8 > len(img_bytes):
            raise MetadataError(f"truncated PNG chunk header at offset {pos}")

        length, cid = struct.unpack(">I4s", img_bytes[pos:pos + 8])
        end = pos + 12 + length
        if end > len(img_bytes):
            raise MetadataError(f"truncated PNG chunk {cid!r} at offset {pos}")

        chunks.append((cid, img_bytes[pos:end]))
        pos = end

    return chunks


def _owned_text_chunk(cid: bytes, chunk: bytes) -> bool:
    if cid not in (b"tEXt", b"iTXt", b"zTXt"):
        return False
    keyword = chunk[8:-4].split(b"\x00", 1)[0]
    return keyword in PNG_TEXT_KEYWORDS


def _metadata_chunks(prompt: str) -> bytes:
    buf = io.BytesIO()
    PngImagePlugin.putchunk(buf, b"tEXt", b"Artist\x00" + ARTIST.encode("latin-1"))
    # keyword, compression flag and method, empty language tag and translated keyword
    PngImagePlugin.putchunk(buf, b"iTXt", b"Description\x00\x00\x00\x00\x00" + prompt.encode("utf-8"))
    PngImagePlugin.putchunk(buf, b"eXIf", build_exif(prompt)[len(EXIF_HEADER):])
    return buf.getvalue()


def add_to_png(img_bytes: bytes, prompt: str) -> bytes:
    """Tag a PNG with the prompt as an eXIf chunk and an iTXt Description chunk"""
    _check_format(img_bytes, "PNG")

    chunks = _png_chunks(img_bytes)
    if not chunks or chunks[0][0] != b"IHDR":
        raise MetadataError("PNG does not start with an IHDR chunk")

    out = io.BytesIO()
    out.write(PNG_SIGNATURE)
    out.write(chunks[0][1])
    out.write(_metadata_chunks(prompt))

    for cid, chunk in chunks[1:]:
        if cid == b"eXIf" or _owned_text_chunk(cid, chunk):
            continue
        out.write(chunk)

    return out.getvalue()


def get_metadata_adder(output_format: str) -> Callable[[bytes, str], bytes]:
    if output_format == "png":
        return add_to_png
    if output_format == "jpeg":
        return add_to_jpeg
    raise MetadataError(f"unknown output format {output_format!r}")
