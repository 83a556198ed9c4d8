"""
Base classes for device transports.

DebugTransport defines the one operation the log console and the
register shell need: issue a single control transfer with a timeout.
The pyusb implementation lives in device_usb; tests inject fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from .constants import TRANSFER_TIMEOUT_MS
from .protocol import ControlRequest


class DeviceNotFoundError(RuntimeError):
    """No device with the requested VID/PID, or it could not be opened."""

    def __init__(self, vid: int, pid: int, reason: str = "not found"):
        super().__init__(f"USB device {vid:04x}:{pid:04x} {reason}")
        self.vid = vid
        self.pid = pid


class TransportError(IOError):
    """A control transfer failed.

    ``operation`` is the logical operation (e.g. "read-register"),
    ``cause`` the underlying backend error.
    """

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        detail = str(cause) if cause is not None else "unknown error"
        super().__init__(f"{operation} failed: {detail}")
        self.operation = operation
        self.cause = cause


class TransportTimeout(TransportError):
    """The device did not complete the transfer within the timeout."""


class DebugTransport(ABC):
    """Base for anything that can carry a ControlRequest to the device.

    Implementations must be safe to call from several threads; at most
    one transfer is in flight at a time.
    """

    @abstractmethod
    def transfer(self, request: ControlRequest,
                 timeout: int = TRANSFER_TIMEOUT_MS) -> bytes:
        """Issue one control transfer.

        Returns the IN data stage (b"" for OUT or zero-length requests).

        Raises:
            TransportTimeout: No completion within *timeout* ms.
            TransportError: Any other failure.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release resources.  Calling twice is harmless."""
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether transfers can be issued."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
