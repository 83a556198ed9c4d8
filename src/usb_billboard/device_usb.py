"""
pyusb transport for Billboard debug devices.

The debug firmware only uses the default control pipe, so no endpoints
are looked up: the device is found by VID/PID, the kernel driver (if
any) is detached from the debug interface, the interface is claimed
and every operation is a single vendor control transfer.

The log console drives this object from two threads.  A USB device
processes one control transfer at a time, so ``transfer()`` holds a
lock for the duration of each call.
"""

from __future__ import annotations

import logging
import threading

import usb.core
import usb.util

from .constants import DEFAULT_INTERFACE, TRANSFER_TIMEOUT_MS, Direction
from .device_base import (
    DebugTransport,
    DeviceNotFoundError,
    TransportError,
    TransportTimeout,
)
from .protocol import ControlRequest

log = logging.getLogger(__name__)


class UsbDebugDevice(DebugTransport):
    """Open Billboard device, usable as a context manager.

    Usage::

        with UsbDebugDevice.open(0x343C, 0x5361) as dev:
            data = dev.transfer(encode_read_register(0, 0x100))
    """

    def __init__(self, device, vid: int, pid: int,
                 interface: int = DEFAULT_INTERFACE):
        self._dev = device
        self.vid = vid
        self.pid = pid
        self.interface = interface
        self._lock = threading.Lock()

    @classmethod
    def open(cls, vid: int, pid: int,
             interface: int = DEFAULT_INTERFACE) -> "UsbDebugDevice":
        """Find and claim the device.

        Raises:
            DeviceNotFoundError: No match, or the device cannot be claimed.
        """
        try:
            dev = usb.core.find(idVendor=vid, idProduct=pid)
        except usb.core.NoBackendError as e:
            # libusb missing: apt install libusb-1.0-0 / dnf install libusb1
            raise DeviceNotFoundError(vid, pid, f"could not be opened: {e}") from e
        if dev is None:
            raise DeviceNotFoundError(vid, pid)

        try:
            if dev.is_kernel_driver_active(interface):
                dev.detach_kernel_driver(interface)
                log.debug("Detached kernel driver from interface %d", interface)
        except (usb.core.USBError, NotImplementedError):
            pass

        try:
            dev.set_configuration()
            usb.util.claim_interface(dev, interface)
        except usb.core.USBError as e:
            usb.util.dispose_resources(dev)
            raise DeviceNotFoundError(vid, pid, f"could not be opened: {e}") from e

        log.info("Opened debug device %04x:%04x (intf=%d)", vid, pid, interface)
        return cls(dev, vid, pid, interface)

    @property
    def is_open(self) -> bool:
        return self._dev is not None

    def transfer(self, request: ControlRequest,
                 timeout: int = TRANSFER_TIMEOUT_MS) -> bytes:
        """Issue one vendor control transfer (serialised across threads)."""
        name = request.name or f"request 0x{request.request:02X}"
        bm_request_type = usb.util.build_request_type(
            int(request.direction), usb.util.CTRL_TYPE_VENDOR, int(request.recipient))
        if request.direction == Direction.OUT:
            data_or_length = request.payload
        else:
            data_or_length = request.length

        with self._lock:
            if self._dev is None:
                raise TransportError(name, RuntimeError("device is closed"))
            log.debug("-> %s", request.describe())
            try:
                result = self._dev.ctrl_transfer(
                    bm_request_type, request.request, request.value,
                    request.index, data_or_length, timeout=timeout)
            except usb.core.USBTimeoutError as e:
                raise TransportTimeout(name, e) from e
            except usb.core.USBError as e:
                raise TransportError(name, e) from e

        if request.direction == Direction.OUT:
            return b""
        data = bytes(result)
        log.debug("<- %s: %s", name, data.hex(" ") if data else "(empty)")
        return data

    def close(self) -> None:
        """Release the interface and free libusb resources."""
        with self._lock:
            if self._dev is None:
                return
            dev, self._dev = self._dev, None
        try:
            usb.util.release_interface(dev, self.interface)
        except usb.core.USBError as e:
            log.debug("release_interface failed: %s", e)
        usb.util.dispose_resources(dev)
        log.info("Debug device %04x:%04x closed", self.vid, self.pid)

    def __repr__(self) -> str:
        return (f"UsbDebugDevice(vid=0x{self.vid:04x}, pid=0x{self.pid:04x}, "
                f"intf={self.interface}, open={self.is_open})")
