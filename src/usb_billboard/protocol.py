"""
Vendor control-transfer codec for the Billboard debug firmware.

Pure functions: each logical operation maps to one ``ControlRequest``
(direction, bRequest, recipient, wValue, wIndex, wLength, payload), and
device replies are turned back into bytes.  No USB I/O happens here.

Protocol::

    op              dir  bRequest  recipient  wValue            wIndex     wLength
    enable log      OUT  0x22      interface  0                 interface  0
    send command    OUT  0x22      interface  0                 interface  len(text)
    fetch log       IN   0x10      device     0                 0          chunk size
    read register   IN   0x12      device     addr              offset     8
    write register  IN   0x11      device     addr<<8 | value   offset     0

0x22 is shared by enable and command; only wLength tells them apart,
so callers go through the ``EnableLog`` / ``ConsoleCommand`` variants.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .constants import (
    DEFAULT_INTERFACE,
    LOG_CHUNK_SIZE,
    LOG_CONTROL_RECIPIENT,
    LOG_FETCH_RECIPIENT,
    LOG_FILLER,
    REG_READ_SIZE,
    REGISTER_RECIPIENT,
    REQ_GET_DBG_MSG,
    REQ_GET_RD_REG,
    REQ_GET_WR_REG,
    REQ_SET_DBG_MSG,
    Direction,
    Recipient,
)


@dataclass(frozen=True)
class ControlRequest:
    """One vendor control transfer, ready for the transport."""

    direction: Direction
    request: int
    recipient: Recipient
    value: int
    index: int
    length: int
    payload: bytes = b""
    name: str = ""

    def __post_init__(self):
        if not 0 <= self.request <= 0xFF:
            raise ValueError(f"bRequest out of range: {self.request:#x}")
        for field_name in ("value", "index", "length"):
            v = getattr(self, field_name)
            if not 0 <= v <= 0xFFFF:
                raise ValueError(f"{field_name} out of u16 range: {v:#x}")
        if self.direction == Direction.OUT and len(self.payload) != self.length:
            raise ValueError(
                f"OUT payload is {len(self.payload)} bytes, wLength={self.length}")
        if self.direction == Direction.IN and self.payload:
            raise ValueError("IN request cannot carry a payload")

    def describe(self) -> str:
        """Short one-line form for debug logging."""
        return (f"{self.name or 'request'} {self.direction.name} "
                f"req=0x{self.request:02X} {self.recipient.name.lower()} "
                f"wValue=0x{self.value:04X} wIndex=0x{self.index:04X} "
                f"wLength={self.length}")


# =========================================================================
# Console (request 0x22)
# =========================================================================

@dataclass(frozen=True)
class EnableLog:
    """Zero-length 0x22: start log output."""


@dataclass(frozen=True)
class ConsoleCommand:
    """Non-empty 0x22: command text for the firmware console."""

    text: str

    def __post_init__(self):
        if not self.text:
            raise ValueError("Console command text must not be empty")


ConsoleMessage = Union[EnableLog, ConsoleCommand]


def encode_console(message: ConsoleMessage,
                   interface: int = DEFAULT_INTERFACE) -> ControlRequest:
    """Encode a request 0x22 message (enable log or command text)."""
    if isinstance(message, EnableLog):
        payload, name = b"", "enable-log"
    elif isinstance(message, ConsoleCommand):
        payload, name = message.text.encode("utf-8"), "send-command"
    else:
        raise TypeError(f"Not a console message: {message!r}")
    return ControlRequest(
        direction=Direction.OUT,
        request=REQ_SET_DBG_MSG,
        recipient=LOG_CONTROL_RECIPIENT,
        value=0,
        index=interface,
        length=len(payload),
        payload=payload,
        name=name,
    )


def encode_enable_log(interface: int = DEFAULT_INTERFACE) -> ControlRequest:
    return encode_console(EnableLog(), interface)


def encode_send_command(text: str,
                        interface: int = DEFAULT_INTERFACE) -> ControlRequest:
    return encode_console(ConsoleCommand(text), interface)


# =========================================================================
# Log fetch (request 0x10)
# =========================================================================

def encode_fetch_log(chunk_size: int = LOG_CHUNK_SIZE) -> ControlRequest:
    """IN request for the next chunk of log bytes."""
    if chunk_size <= 0:
        raise ValueError(f"Chunk size must be positive, got {chunk_size}")
    return ControlRequest(
        direction=Direction.IN,
        request=REQ_GET_DBG_MSG,
        recipient=LOG_FETCH_RECIPIENT,
        value=0,
        index=0,
        length=chunk_size,
        name="fetch-log",
    )


def decode_log_chunk(data) -> bytes:
    """Valid log bytes of a chunk: everything before the first filler byte.

    Short, empty or all-filler replies just mean "no new data".
    """
    if not data:
        return b""
    raw = bytes(data)
    end = raw.find(LOG_FILLER)
    return raw if end < 0 else raw[:end]


# =========================================================================
# Registers (requests 0x11 / 0x12)
# =========================================================================

def _check_register(addr: int, offset: int) -> None:
    if not 0 <= addr <= 0xFF:
        raise ValueError(f"Register address must fit in 8 bits: {addr:#x}")
    if not 0 <= offset <= 0xFFFF:
        raise ValueError(f"Register offset must fit in 16 bits: {offset:#x}")


def encode_read_register(addr: int, offset: int) -> ControlRequest:
    """IN 0x12, wValue=addr, wIndex=offset, 8 bytes back."""
    _check_register(addr, offset)
    return ControlRequest(
        direction=Direction.IN,
        request=REQ_GET_RD_REG,
        recipient=REGISTER_RECIPIENT,
        value=addr,
        index=offset,
        length=REG_READ_SIZE,
        name="read-register",
    )


def encode_write_register(addr: int, offset: int, value: int) -> ControlRequest:
    """IN 0x11 with no data stage; the byte rides in wValue's low byte.

    The firmware writes as a side effect of the setup packet, so an
    empty reply is success.
    """
    _check_register(addr, offset)
    if not 0 <= value <= 0xFF:
        raise ValueError(f"Register value must fit in 8 bits: {value:#x}")
    return ControlRequest(
        direction=Direction.IN,
        request=REQ_GET_WR_REG,
        recipient=REGISTER_RECIPIENT,
        value=(addr << 8) | value,
        index=offset,
        length=0,
        name="write-register",
    )


def decode_register_reply(data) -> bytes:
    """Register read reply, byte-for-byte as the device returned it."""
    if not data:
        return b""
    return bytes(data)
