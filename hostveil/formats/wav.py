"""WAVE (RIFF) sub-chunk walking."""

from __future__ import annotations

from hostveil.core.cursor import BinaryCursor
from hostveil.core.types import FormatKind, WavInfo

RIFF_ID = b"RIFF"
WAVE_ID = b"WAVE"
FMT_ID = b"fmt "
DATA_ID = b"data"
FIRST_SUBCHUNK = 12
AUDIO_FORMAT_PCM = 1
# bits-per-sample field inside the fmt chunk payload
FMT_BITS_PER_SAMPLE_OFFSET = 14


def detect(cursor: BinaryCursor) -> FormatKind:
    cursor.seek(0)
    if cursor.remaining() < FIRST_SUBCHUNK + 8:
        return FormatKind.UNKNOWN
    header = cursor.read(FIRST_SUBCHUNK)
    if header[:4] != RIFF_ID or header[8:12] != WAVE_ID:
        return FormatKind.UNKNOWN

    # look for the fmt chunk to tell PCM apart from compressed audio
    while cursor.remaining() >= 8:
        chunk_id = cursor.read(4)
        chunk_size = cursor.read_u32("<")
        if chunk_id == FMT_ID:
            audio_format = cursor.read_u16("<")
            return FormatKind.WAV_PCM if audio_format == AUDIO_FORMAT_PCM else FormatKind.WAV_NO_PCM
        if chunk_size > cursor.remaining():
            break
        cursor.skip(chunk_size)
    return FormatKind.WAV_NO_PCM


def inspect(cursor: BinaryCursor) -> WavInfo:
    """Walk sub-chunks up to ``data``; remember bits-per-sample from ``fmt ``.

    Works for compressed WAVE hosts too, whatever sample width they declare.
    """

    bits_per_sample = 0
    cursor.seek(FIRST_SUBCHUNK)
    while True:
        chunk_id = cursor.read(4)
        chunk_size = cursor.read_u32("<")
        if chunk_id == DATA_ID:
            break
        if chunk_id == FMT_ID:
            if chunk_size < FMT_BITS_PER_SAMPLE_OFFSET + 2:
                raise ValueError(f"WAVE fmt chunk too short ({chunk_size} bytes)")
            cursor.skip(FMT_BITS_PER_SAMPLE_OFFSET)
            bits_per_sample = cursor.read_u16("<")
            chunk_size -= FMT_BITS_PER_SAMPLE_OFFSET + 2
        cursor.skip(chunk_size)

    # sub-byte sample widths (ADPCM, GSM) are kept; they only rule out LSB
    header_size = cursor.tell()
    if header_size + chunk_size > cursor.end():
        raise ValueError("WAVE data chunk runs past the end of the file")
    return WavInfo(header_size=header_size, data_size=chunk_size, bits_per_sample=bits_per_sample)
