"""
Identifier generation

Event ids and command ids are time-ordered (UUIDv7 layout) so that the
event log sorts naturally by creation time.
"""

import secrets
import time


def generate_id() -> str:
    """
    Generate a UUIDv7-style identifier

    The first 48 bits carry the Unix time in milliseconds, followed by the
    version nibble, random bits, the RFC 4122 variant and more random bits.

    Returns:
        36-character hyphenated hex string
    """
    timestamp_ms = int(time.time() * 1000) & 0xFFFFFFFFFFFF
    rand_a = secrets.randbits(12)
    rand_b = secrets.randbits(62)

    value = (timestamp_ms << 80) | (0x7 << 76) | (rand_a << 64) | (0b10 << 62) | rand_b
    hex_str = f"{value:032x}"
    return f"{hex_str[:8]}-{hex_str[8:12]}-{hex_str[12:16]}-{hex_str[16:20]}-{hex_str[20:]}"


def generate_policy_number(previous: str, replacement_guardian_id: str) -> str:
    """
    Derive a fresh bond policy number for a carried-over bond

    The previous number stays recognisable as a prefix so that insurers can
    match the carry-over to the original cover.
    """
    suffix = secrets.token_hex(3).upper()
    return f"{previous}-R-{replacement_guardian_id[:8]}-{suffix}"
