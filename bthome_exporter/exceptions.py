# ABOUTME: Error taxonomy for BTHome service data decoding
# ABOUTME: Every decode failure is a ValueError so callers can treat it like any bad packet
from typing import Optional


class BTHomeDecodeError(ValueError):
    """Base class for payloads that cannot be decoded as BTHome v2."""


class EncryptedPayloadUnsupported(BTHomeDecodeError):
    """The device info byte has the encryption flag set."""

    def __init__(self):
        super().__init__("Encrypted BTHome payloads are not supported")


class UnsupportedVersion(BTHomeDecodeError):
    """The device info byte announces a BTHome version other than 2."""

    def __init__(self, version: int):
        self.version = version
        super().__init__(f"Unsupported BTHome version {version}")


class UnknownObjectId(BTHomeDecodeError):
    """An object id that has no catalog entry, so its width is unknown."""

    def __init__(self, object_id: int, offset: Optional[int] = None):
        self.object_id = object_id
        self.offset = offset
        location = f" at offset {offset}" if offset is not None else ""
        super().__init__(f"Unknown object id 0x{object_id:02X}{location}")


class TruncatedPayload(BTHomeDecodeError):
    """The payload ended in the middle of a field."""

    def __init__(self, object_id: int, needed: int, available: int):
        self.object_id = object_id
        self.needed = needed
        self.available = available
        super().__init__(
            f"Incomplete data for object id 0x{object_id:02X}: "
            f"needed {needed} bytes, {available} remaining"
        )
