"""
BLCRYPT - save container and item serial transcoder

This module provides the four operations an editor needs: turn a .sav container
into YAML bytes and back, find the item serials inside a loaded document, and
write edited item stats back into it.
"""

from .main import *
from .items import DecodedItem, decode_item_serial, encode_item_serial
from .serials import (
    DECODED_ITEMS_KEY,
    apply_serial_edits,
    extract_and_encode_serials,
    find_serials,
    insert_decoded_items,
)
from .document import dump_yaml, load_yaml
from .version import __version__

# ============================================================================
# CONTAINER FUNCTIONS (bytes → bytes)
# ============================================================================

def decode_container(sav_data: bytes, steam_id: str, strict: bool | None = None):
    """
    Decrypt and inflate a .sav container.

    Args:
        sav_data: Raw container bytes (length must be a multiple of 16)
        steam_id: Account id; any non-digit characters are ignored
        strict: Verify the Adler-32/length footer (defaults to BLCRYPT_STRICT_FOOTER)

    Returns:
        The YAML document bytes

    Raises:
        InputSizeError: Container is not block aligned
        CompressionError: Payload did not inflate (usually a wrong account id)
        ChecksumError: Footer mismatch, strict mode only
    """
    return blcrypt.decrypt_sav(sav_data, steam_id, strict=strict)


def encode_container(document: bytes, steam_id: str):
    """
    Deflate and encrypt YAML bytes into a .sav container.

    Args:
        document: YAML document bytes
        steam_id: Account id used to derive the key

    Returns:
        Container bytes, always a multiple of 16 long
    """
    return blcrypt.encrypt_sav(document, steam_id)


# ============================================================================
# DOCUMENT FUNCTIONS (tree → serials)
# ============================================================================

def find_records(tree):
    """
    Walk a loaded document and decode every item serial in it.

    Returns:
        Mapping of path (``a.b[2].c``) to DecodedItem, in traversal order.
        Serials that decode with confidence "none" are left out.
    """
    return find_serials(tree)


def apply_record_edits(tree, edits):
    """
    Re-encode each DecodedItem and write it at its path, in place.

    Note:
        - Only the addressed leaves change; every other key is kept
        - Paths must come from find_records() on the same tree
        - An item that cannot be encoded keeps its original serial
    """
    return apply_serial_edits(tree, edits)


def bit_pack_encode(data: bytes, prefix: str = blcrypt.SERIAL_MARKER):
    return blcrypt.bit_pack_encode(data, prefix)


def bit_pack_decode(serial: str):
    return blcrypt.bit_pack_decode(serial)


def decrypt_file(input_path: str, output_path: str, steam_id: str, decode_items: bool = False, strict: bool | None = None):
    return blcrypt.decrypt_file(input_path, output_path, steam_id, decode_items=decode_items, strict=strict)


def encrypt_file(input_path: str, output_path: str, steam_id: str, encode_items: bool = False):
    return blcrypt.encrypt_file(input_path, output_path, steam_id, encode_items=encode_items)
