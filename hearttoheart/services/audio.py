"""WAV container for raw PCM speech output."""

import base64
import struct

WAV_HEADER_SIZE = 44
NUM_CHANNELS = 1
BITS_PER_SAMPLE = 16
PCM_FORMAT = 1


def add_wav_header(pcm_data: bytes, sample_rate: int) -> bytes:
    """Wrap mono 16-bit little-endian PCM samples in a 44-byte RIFF/WAVE header.

    Args:
        pcm_data: Raw sample bytes.
        sample_rate: Samples per second (24000 for the speech backend).

    Returns:
        bytes: Header followed by the unmodified payload.
    """
    block_align = NUM_CHANNELS * BITS_PER_SAMPLE // 8
    byte_rate = sample_rate * block_align
    data_size = len(pcm_data)

    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        NUM_CHANNELS,
        sample_rate,
        byte_rate,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )
    return header + pcm_data


def pcm_to_wav_base64(pcm_data: bytes, sample_rate: int) -> str:
    """Encode PCM as a base64 WAV file."""
    return base64.b64encode(add_wav_header(pcm_data, sample_rate)).decode("ascii")
