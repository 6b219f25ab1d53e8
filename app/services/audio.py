"""
Base64 audio decoding for recorded voice answers.

Recordings arrive as one base64 string that can be several megabytes long.
It is decoded in fixed-size slices so that no single intermediate decode
allocation is larger than one chunk.
"""
import base64
import binascii
import logging

from app.core.config import AUDIO_CHUNK_SIZE

logger = logging.getLogger(__name__)

_DATA_URL_MARKER = ";base64,"


def strip_data_url(data: str) -> str:
    """Drop a `data:<mime>;base64,` prefix if the client sent a data URL."""
    if data.startswith("data:"):
        marker = data.find(_DATA_URL_MARKER)
        if marker != -1:
            return data[marker + len(_DATA_URL_MARKER):]
    return data


def decode_base64_chunked(data: str, chunk_size: int = AUDIO_CHUNK_SIZE) -> bytes:
    """
    Decode a base64 string chunk by chunk into a single buffer.

    Args:
        data: Base64 text, optionally a data URL
        chunk_size: Characters of base64 text decoded per step; must be a
            positive multiple of 4 so every chunk boundary falls on a quantum

    Returns:
        The decoded bytes, identical to a one-shot decode

    Raises:
        ValueError: If chunk_size is invalid or the payload is not valid base64
    """
    if chunk_size <= 0 or chunk_size % 4:
        raise ValueError(f"chunk_size must be a positive multiple of 4, got {chunk_size}")

    payload = strip_data_url(data.strip())
    if any(ch.isspace() for ch in payload):
        payload = "".join(payload.split())
    if len(payload) % 4:
        raise ValueError("Base64 payload length is not a multiple of 4")

    buffer = bytearray()
    for position in range(0, len(payload), chunk_size):
        chunk = payload[position:position + chunk_size]
        try:
            buffer += base64.b64decode(chunk, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Invalid base64 data at offset {position}: {e}") from e

    logger.debug(f"Decoded {len(payload)} base64 chars into {len(buffer)} bytes")
    return bytes(buffer)
