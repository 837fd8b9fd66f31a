from __future__ import annotations

import zlib

# ============================================================================
# PlantUML text encoding
#
# The compact form accepted by PlantUML servers (`/png/<encoded>`): raw
# deflate of the UTF-8 text, then a base64 variant over the alphabet below,
# three bytes to four characters, zero padded.
# ============================================================================

PLANTUML_ALPHABET = (
    "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"
)

_DECODE_MAP = {char: index for index, char in enumerate(PLANTUML_ALPHABET)}


def _encode3bytes(b1: int, b2: int, b3: int) -> str:
    """Encode 3 bytes into 4 characters."""
    c1 = b1 >> 2
    c2 = ((b1 & 0x3) << 4) | (b2 >> 4)
    c3 = ((b2 & 0xF) << 2) | (b3 >> 6)
    c4 = b3 & 0x3F
    return "".join(PLANTUML_ALPHABET[c & 0x3F] for c in (c1, c2, c3, c4))


def encode(text: str) -> str:
    """Compress and encode a PlantUML script."""
    compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    data = compressor.compress(text.encode("utf-8")) + compressor.flush()

    chunks: list[str] = []
    for i in range(0, len(data), 3):
        block = data[i:i + 3].ljust(3, b"\0")
        chunks.append(_encode3bytes(block[0], block[1], block[2]))
    return "".join(chunks)


def decode(encoded: str) -> str:
    """Inverse of `encode`."""
    data = bytearray()
    for i in range(0, len(encoded), 4):
        chunk = encoded[i:i + 4]
        try:
            c = [_DECODE_MAP[char] for char in chunk.ljust(4, "0")]
        except KeyError as exc:
            raise ValueError(f"Invalid PlantUML encoded character {exc.args[0]!r}") from None
        data.append(((c[0] << 2) | (c[1] >> 4)) & 0xFF)
        data.append(((c[1] << 4) | (c[2] >> 2)) & 0xFF)
        data.append(((c[2] << 6) | c[3]) & 0xFF)

    # trailing zero padding is ignored by the raw inflater
    decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
    return decompressor.decompress(bytes(data)).decode("utf-8")
