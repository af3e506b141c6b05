"""
Absolute Format Checksums
=========================

Every absolute-format record ends with a one-byte checksum chosen so that
the sum of all bytes of the record, checksum included, is 0 modulo 256:

    checksum = (256 - (sum(header + payload) & 0xFF)) & 0xFF

The absolute loader adds up every byte it reads and refuses a record whose
total is non-zero, so a single corrupted byte on the tape is detected.

Reference
---------
- www.pcjs.org/apps/pdp11/tapes/absloader
"""


def calculate_block_checksum(data: bytes) -> int:
    """
    Calculate the checksum byte for a record's header and payload.

    Args:
        data: Record bytes from the signature up to the end of the payload

    Returns:
        Checksum byte (0x00 - 0xFF)

    Example:
        >>> calculate_block_checksum(bytes([0x01, 0x00, 0x06, 0x00, 0x01, 0x00]))
        248
    """
    return (0x100 - (sum(data) & 0xFF)) & 0xFF


def verify_block_checksum(record: bytes) -> bool:
    """
    Check a complete record, including its trailing checksum byte.

    Returns:
        True if all bytes of the record sum to 0 modulo 256
    """
    return len(record) > 0 and (sum(record) & 0xFF) == 0
