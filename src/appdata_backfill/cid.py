"""Derive IPFS content identifiers from app data hashes."""

import base64

from core.errors import ValidationError

AppDataHash = bytes

APP_DATA_HASH_LENGTH = 32

# CIDv1 header: version 1, dag-pb codec, sha2-256 multihash of 32 bytes
CID_VERSION = 0x01
DAG_PB_CODEC = 0x70
SHA2_256_CODE = 0x12
CID_PREFIX = bytes([CID_VERSION, DAG_PB_CODEC, SHA2_256_CODE, APP_DATA_HASH_LENGTH])

# Multibase prefix for base32 lowercase without padding
BASE32_LOWER_PREFIX = "b"


def validate_app_data_hash(value: bytes) -> AppDataHash:
    """Return value as bytes, raising ValidationError unless it is 32 bytes."""
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise ValidationError(
            f"App data hash must be bytes, got {type(value).__name__}"
        )
    value = bytes(value)
    if len(value) != APP_DATA_HASH_LENGTH:
        raise ValidationError(
            f"App data hash must be {APP_DATA_HASH_LENGTH} bytes, got {len(value)}"
        )
    return value


def app_data_cid(app_data_hash: AppDataHash) -> str:
    """
    Build the CID under which an app data document was uploaded.

    Older app data was pinned as dag-pb, so the contract hash is the sha2-256
    digest of the dag-pb node rather than of the raw JSON.

    Args:
        app_data_hash: 32 byte hash stored on the order

    Returns:
        Multibase base32 CID string (always starts with "bafybei")

    Raises:
        ValidationError: If the hash is not 32 bytes
    """
    raw_cid = CID_PREFIX + validate_app_data_hash(app_data_hash)
    encoded = base64.b32encode(raw_cid).decode("ascii").lower().rstrip("=")
    return BASE32_LOWER_PREFIX + encoded


def hash_hex(app_data_hash: AppDataHash) -> str:
    """Lowercase hex form used in logs and reports."""
    return bytes(app_data_hash).hex()
