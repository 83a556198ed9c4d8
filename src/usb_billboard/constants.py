"""Shared constants for the USB Billboard debug tool.

Vendor request codes and transfer parameters understood by the
Billboard debug firmware.
"""

from enum import IntEnum


class Direction(IntEnum):
    """Data stage direction (bmRequestType bit 7, same values as usb.util)."""
    OUT = 0x00
    IN = 0x80


class Recipient(IntEnum):
    """bmRequestType recipient bits (same values as usb.util)."""
    DEVICE = 0
    INTERFACE = 1


# Default device identity (overridable with --vid / --pid)
DEFAULT_VID = 0x343C
DEFAULT_PID = 0x5361

# Interface claimed on open; also carried in the 0x22 index field
DEFAULT_INTERFACE = 0

# Vendor requests:
#   IN  0x10  fetch pending log bytes
#   IN  0x11  write register (value = addr<<8 | byte, no data stage)
#   IN  0x12  read register  (value = addr, index = offset, 8 bytes back)
#   OUT 0x22  zero length = enable log, otherwise console command text
REQ_GET_DBG_MSG = 0x10
REQ_GET_WR_REG = 0x11
REQ_GET_RD_REG = 0x12
REQ_SET_DBG_MSG = 0x22

# Recipients for the log requests differ between firmware revisions.
# Current firmware: 0x22 to the interface, 0x10 to the device.
LOG_CONTROL_RECIPIENT = Recipient.INTERFACE
LOG_FETCH_RECIPIENT = Recipient.DEVICE

# Register requests always go to the device.  With an interface
# recipient, libusb/usbfs forces wIndex low byte == interface number,
# which would clobber the register offset.  Firmware only checks bRequest.
REGISTER_RECIPIENT = Recipient.DEVICE

# Log chunk length: 8 bytes on early firmware, 64 on later revisions
LOG_CHUNK_SIZE = 8

# Register read reply length
REG_READ_SIZE = 8

# Padding byte after valid log text in a chunk
LOG_FILLER = 0x00

# Per-transfer timeout (ms); a detached device never blocks longer
TRANSFER_TIMEOUT_MS = 200

# Delay between polls when the device has nothing to say (s)
POLL_INTERVAL_S = 0.01

# How often the send loop checks for shutdown while idle (s)
INPUT_POLL_S = 0.05

# Longest line kept before a forced flush
MAX_LINE_BYTES = 1024

# Console commands are executed by the firmware on carriage return
COMMAND_TERMINATOR = "\r"
