import base64
import binascii
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ticket_router.logging_config import get_logger
from ticket_router.schemas.provider import MediaPayload

logger = get_logger("media_service")


class MediaDownloadError(Exception):
    def __init__(self, message_id: str):
        self.message_id = message_id
        super().__init__(f"Provider returned no media for message {message_id}")


@dataclass
class MediaCapture:
    filename: str
    media_type: str
    stored: bool
    path: Optional[str] = None
    size_bytes: Optional[int] = None
    error: Optional[str] = None


def mime_subtype(mimetype: str) -> str:
    """'audio/ogg; codecs=opus' -> 'ogg'"""
    _, _, subtype = mimetype.partition("/")
    return subtype.split(";")[0].strip()


def mime_primary_type(mimetype: str) -> str:
    return mimetype.split("/")[0].strip()


def build_media_filename(mimetype: str, now: Optional[float] = None) -> str:
    millis = int((time.time() if now is None else now) * 1000)
    ext = mime_subtype(mimetype)
    return f"{millis}.{ext}" if ext else str(millis)


def _safe_filename(filename: str) -> str:
    return Path(filename.replace("\\", "/")).name


def capture_media(media: MediaPayload, media_dir: Path) -> MediaCapture:
    """Write a media payload to the shared media directory.

    Write failures are reported in the result rather than raised, so the
    message can still be stored under its filename.
    """
    filename = _safe_filename(media.filename) if media.filename else ""
    if not filename:
        filename = build_media_filename(media.mimetype)

    capture = MediaCapture(filename=filename, media_type=mime_primary_type(media.mimetype), stored=False)
    target_path = Path(media_dir) / filename

    try:
        decoded = base64.b64decode(media.data, validate=False)
    except (binascii.Error, ValueError) as exc:
        capture.error = f"base64_decode_failed:{exc}"
        logger.error("Media decode failed", extra={"context": {"filename": filename, "error": capture.error}})
        return capture

    try:
        target_path.parent.mkdir(parents=True, exist_ok=True)
        target_path.write_bytes(decoded)
    except OSError as exc:
        capture.error = f"write_failed:{exc}"
        logger.error("Media write failed", extra={"context": {"path": str(target_path), "error": str(exc)}})
        return capture

    capture.stored = True
    capture.path = str(target_path)
    capture.size_bytes = len(decoded)
    return capture
