"""EDID decoding into a connector-independent display identity"""

import hashlib
import logging
import struct

from edidrr.common.settings import Settings
from edidrr.common.types import Edid

logger = logging.getLogger(__name__)

MANUFACTURER_OFFSET = 8
PRODUCT_CODE_OFFSET = 10
SERIAL_NUMBER_OFFSET = 12


def edid_decode(raw: bytes) -> Edid:
    """
    Decode a raw EDID blob into an identity

    The identity key is the SHA-256 digest of the whole blob, so two displays
    of the same model with different serial numbers (or different extension
    blocks) never collide.

    Args:
        raw: EDID property bytes as read from the output; may be short or empty

    Returns:
        Decoded Edid, or an empty Edid (zero digest) if the blob is shorter
        than one EDID block. A short blob is not an error.
    """
    raw = bytes(raw)
    if len(raw) < Settings.EDID_MIN_SIZE:
        if raw:
            logger.warning(f"EDID data too small ({len(raw)} bytes), identity unavailable")
        return Edid()

    digest = hashlib.sha256(raw).digest()
    manufacturer_id = manufacturerId_decode(raw)
    (product_code_raw,) = struct.unpack_from("<H", raw, PRODUCT_CODE_OFFSET)
    (serial_number_raw,) = struct.unpack_from("<I", raw, SERIAL_NUMBER_OFFSET)
    product_code = f"{product_code_raw:04X}"
    serial_number = f"{serial_number_raw:08X}"

    return Edid(
        raw=raw,
        digest=digest,
        manufacturer_id=manufacturer_id,
        product_code=product_code,
        serial_number=serial_number,
        name=f"{manufacturer_id}-{product_code}-{serial_number}",
    )


def manufacturerId_decode(raw: bytes) -> str:
    """
    Decode the three-letter PNP manufacturer id

    Bytes 8-9 hold a big-endian word of three 5-bit letters (1 = 'A').

    Args:
        raw: EDID bytes, at least 10 long

    Returns:
        Three-character manufacturer id
    """
    (word,) = struct.unpack_from(">H", raw, MANUFACTURER_OFFSET)
    letters = ((word >> 10) & 0x1F, (word >> 5) & 0x1F, word & 0x1F)
    return "".join(chr(letter + ord("A") - 1) for letter in letters)
