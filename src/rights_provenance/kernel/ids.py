"""
Identifier generation

Two kinds of ids live in the ledger:

- Event and command ids: UUIDv7-like strings, sortable and globally unique.
- Right ids: small positive integers handed out by a single process-wide
  allocator shared by original rights and derived licenses.

Fun fact: UUIDv7 embeds a millisecond timestamp in its top 48 bits, so two ids
generated a second apart already sort correctly as plain strings.
"""

import secrets
import threading
import time


def generate_id() -> str:
    """
    Generate a UUIDv7-like identifier (time-ordered UUID)

    Format: 8-4-4-4-12 hex characters (36 chars with hyphens)
    First 48 bits: Unix timestamp in milliseconds, remaining bits random.
    """
    timestamp_48 = int(time.time() * 1000) & 0xFFFFFFFFFFFF

    rand_12 = secrets.randbits(12)
    rand_62 = secrets.randbits(62)

    # Version 7 (0111) in bits 48-51, variant (10) in bits 64-65
    time_high = (timestamp_48 >> 32) & 0xFFFF
    time_mid = (timestamp_48 >> 16) & 0xFFFF
    time_low_and_version = ((timestamp_48 & 0xFFFF) << 16) | (0x7000 | rand_12)
    clock_seq_and_variant = 0x8000 | ((rand_62 >> 48) & 0x3FFF)
    node = rand_62 & 0xFFFFFFFFFFFF

    return (
        f"{time_high:04x}{time_mid:04x}-"
        f"{(time_low_and_version >> 16) & 0xFFFF:04x}-"
        f"{time_low_and_version & 0xFFFF:04x}-"
        f"{clock_seq_and_variant:04x}-"
        f"{node:012x}"
    )


class RightIdAllocator:
    """
    Atomic allocator for right ids

    Ids start at 1 and strictly increase; 0 is reserved for "no parent".
    There is deliberately no way to look at the next id without consuming it.
    """

    def __init__(self, last_allocated: int = 0) -> None:
        """
        Args:
            last_allocated: Highest id already in use (e.g. found during replay)
        """
        if last_allocated < 0:
            raise ValueError("last_allocated must be >= 0")
        self._last = last_allocated
        self._lock = threading.Lock()

    def allocate(self) -> int:
        """Consume and return the next right id"""
        with self._lock:
            self._last += 1
            return self._last

    def observe(self, right_id: int) -> None:
        """Record an id seen during replay so it is never handed out again"""
        with self._lock:
            if right_id > self._last:
                self._last = right_id
