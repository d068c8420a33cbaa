from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

from PyQt6.QtCore import QBuffer, QByteArray, QIODevice
from PyQt6.QtGui import QImageReader

from overlay_settings.errors import ImageDecodeError

_LOGGER = logging.getLogger("RunAnime.Services")

UPLOADS_URL_PREFIX = "/api/uploads/"


def decode_data_url(reference: str) -> bytes:
    header, sep, body = reference.partition(",")
    if not sep or not header.lower().startswith("data:"):
        raise ImageDecodeError("malformed data URL")
    if ";base64" not in header.lower():
        raise ImageDecodeError("only base64 data URLs are supported")
    try:
        return base64.b64decode(body, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise ImageDecodeError(f"invalid base64 payload: {exc}") from exc


class QtImageDecoder:
    """Counts animation frames with Qt's image plugins (GIF included)."""

    def __init__(self, uploads_root: Optional[Path] = None) -> None:
        self._uploads_root = Path(uploads_root) if uploads_root is not None else None

    def resolve(self, reference: str) -> Union[bytes, Path]:
        """Map a sprite reference to raw bytes (data URLs) or a file on disk."""

        if not reference:
            raise ImageDecodeError("empty sprite reference")
        if reference.lower().startswith("data:"):
            return decode_data_url(reference)
        name = reference
        if name.startswith(UPLOADS_URL_PREFIX):
            name = name[len(UPLOADS_URL_PREFIX):]
        candidate = Path(name)
        if candidate.is_absolute():
            if candidate.exists():
                return candidate
            if self._uploads_root is None:
                raise ImageDecodeError(f"sprite not found: {reference}")
            candidate = Path(name.lstrip("/\\"))
        if self._uploads_root is None:
            raise ImageDecodeError(f"no uploads directory to resolve {reference}")
        target = self._uploads_root / candidate
        if not target.exists():
            raise ImageDecodeError(f"sprite not found: {target}")
        return target

    async def frame_count(self, reference: str) -> int:
        source = self.resolve(reference)
        count = await asyncio.to_thread(self._count_frames, source)
        _LOGGER.debug("Decoded %d frames from %s", count, reference[:64])
        return count

    @staticmethod
    def _count_frames(source: Union[bytes, Path]) -> int:
        reader, buffer = _open_reader(source)
        try:
            if not reader.canRead():
                raise ImageDecodeError(f"unreadable image: {reader.errorString()}")
            count = reader.imageCount()
            if count > 0:
                return count
            # Some plugins do not report a count up front; walk the frames instead.
            frames = 0
            while True:
                image = reader.read()
                if image.isNull():
                    break
                frames += 1
            if frames == 0:
                raise ImageDecodeError(f"no frames decoded: {reader.errorString()}")
            return frames
        finally:
            if buffer is not None:
                buffer.close()


def _open_reader(source: Union[bytes, Path]) -> Tuple[QImageReader, Optional[QBuffer]]:
    if isinstance(source, Path):
        return QImageReader(str(source)), None
    buffer = QBuffer()
    buffer.setData(QByteArray(source))
    buffer.open(QIODevice.OpenModeFlag.ReadOnly)
    return QImageReader(buffer), buffer
