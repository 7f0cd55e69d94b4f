"""
Media encoding helpers: data URIs and PCM-to-WAV wrapping.
"""

import base64
import re
import struct
from typing import Optional

PCM_SAMPLE_RATE = 24000
PCM_CHANNELS = 1
PCM_BITS_PER_SAMPLE = 16

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[^;,]+)(?P<params>(?:;[^;,]+)*?);base64,(?P<data>.*)$", re.DOTALL)


def wrap_pcm_as_wav(
    pcm: bytes,
    sample_rate: int = PCM_SAMPLE_RATE,
    channels: int = PCM_CHANNELS,
    bits_per_sample: int = PCM_BITS_PER_SAMPLE,
) -> bytes:
    """Prefix raw little-endian PCM samples with a 44-byte RIFF/WAVE header."""
    byte_rate = sample_rate * channels * bits_per_sample // 8
    block_align = channels * bits_per_sample // 8
    data_size = len(pcm)

    header = b"RIFF"
    header += struct.pack("<I", 36 + data_size)
    header += b"WAVE"
    header += b"fmt "
    header += struct.pack("<IHHIIHH", 16, 1, channels, sample_rate, byte_rate, block_align, bits_per_sample)
    header += b"data"
    header += struct.pack("<I", data_size)
    return header + pcm


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_uri(uri: str) -> Optional[tuple[str, bytes]]:
    match = _DATA_URI_RE.match(uri)
    if not match:
        return None
    return match.group("mime"), base64.b64decode(match.group("data"))


def pcm_sample_rate(mime_type: str, default: int = PCM_SAMPLE_RATE) -> int:
    match = re.search(r"rate=(\d+)", mime_type)
    return int(match.group(1)) if match else default


def is_raw_pcm(mime_type: str) -> bool:
    base = mime_type.split(";", 1)[0].strip().lower()
    return base in ("audio/pcm", "audio/l16", "audio/raw")
