"""
USB Billboard debug tool command-line interface.

Usage::

    usb-billboard log [--vid 343C] [--pid 5361] [--chunk-size 64]
    usb-billboard reg [--vid 343C] [--pid 5361]

Exit codes: 0 clean exit (EOF, quit, Ctrl-C), 1 device not found or
cannot be opened, 2 the device stopped responding during a log session.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .__version__ import __version__
from .constants import DEFAULT_INTERFACE, DEFAULT_PID, DEFAULT_VID, LOG_CHUNK_SIZE
from .device_base import DeviceNotFoundError, TransportError
from .device_usb import UsbDebugDevice
from .log_session import LogSession
from .parsing import ParseError, parse_u16
from .reg_repl import HELP_TEXT, RegisterRepl

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NO_DEVICE = 1
EXIT_DEVICE_ERROR = 2

LOG_BANNER = (
    "--- Log console ---\n"
    " Type a command and press Enter to send, Ctrl+C to quit\n"
    "-------------------"
)


def _hex_u16(text: str) -> int:
    """argparse type: hex number, 0x optional."""
    try:
        return parse_u16(text)
    except ParseError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def _positive_int(text: str) -> int:
    try:
        n = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from None
    if not 0 < n <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"must be 1..65535, got {n}")
    return n


def _interface_number(text: str) -> int:
    """argparse type: USB interface number, 0..255."""
    try:
        n = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from None
    if not 0 <= n <= 0xFF:
        raise argparse.ArgumentTypeError(f"must be 0..255, got {n}")
    return n


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _open_device(vid: int, pid: int, interface: int) -> Optional[UsbDebugDevice]:
    try:
        return UsbDebugDevice.open(vid, pid, interface)
    except DeviceNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None


def run_log(vid: int = DEFAULT_VID, pid: int = DEFAULT_PID,
            interface: int = DEFAULT_INTERFACE,
            chunk_size: int = LOG_CHUNK_SIZE,
            echo_filter: bool = True) -> int:
    """Log console: stream device log, forward typed commands."""
    device = _open_device(vid, pid, interface)
    if device is None:
        return EXIT_NO_DEVICE

    with device:
        print("Device connected.")
        print(LOG_BANNER)
        session = LogSession(device, interface=interface,
                             chunk_size=chunk_size, echo_filter=echo_filter)
        try:
            session.run()
        except TransportError as e:
            print(f"\nDevice error: {e}", file=sys.stderr)
            return EXIT_DEVICE_ERROR

    print("Session ended.")
    return EXIT_OK


def run_reg(vid: int = DEFAULT_VID, pid: int = DEFAULT_PID,
            interface: int = DEFAULT_INTERFACE) -> int:
    """Register shell: r/w commands against the device."""
    device = _open_device(vid, pid, interface)
    if device is None:
        return EXIT_NO_DEVICE

    with device:
        print("Device connected.")
        print(HELP_TEXT)
        try:
            RegisterRepl(device).run()
        except KeyboardInterrupt:
            print()

    print("Session ended.")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    device_opts = argparse.ArgumentParser(add_help=False)
    device_opts.add_argument(
        "--vid", type=_hex_u16, default=DEFAULT_VID,
        help=f"Device vendor ID in hex (default {DEFAULT_VID:04X})")
    device_opts.add_argument(
        "--pid", type=_hex_u16, default=DEFAULT_PID,
        help=f"Device product ID in hex (default {DEFAULT_PID:04X})")
    device_opts.add_argument(
        "--interface", type=_interface_number, default=DEFAULT_INTERFACE,
        help="Debug interface number (default %(default)s)")
    device_opts.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="More logging (-v info, -vv debug)")

    parser = argparse.ArgumentParser(
        prog="usb-billboard",
        description="USB Billboard debug tool",
    )
    parser.add_argument("--version", action="store_true",
                        help="Show version and exit")
    sub = parser.add_subparsers(dest="command")

    log_p = sub.add_parser("log", parents=[device_opts],
                           help="Stream the device debug log")
    log_p.add_argument(
        "--chunk-size", type=_positive_int, default=LOG_CHUNK_SIZE,
        help="Bytes per log fetch, 8 or 64 depending on firmware "
             "(default %(default)s)")
    log_p.add_argument(
        "--no-echo-filter", action="store_true",
        help="Show the device's echo of sent commands")

    sub.add_parser("reg", parents=[device_opts],
                   help="Interactive register read/write (r/w)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"usb-billboard {__version__}")
        return EXIT_OK
    if args.command is None:
        parser.print_help()
        return EXIT_OK

    _setup_logging(args.verbose)
    log.debug("Target %04x:%04x intf=%d", args.vid, args.pid, args.interface)

    try:
        if args.command == "log":
            return run_log(args.vid, args.pid, args.interface,
                           chunk_size=args.chunk_size,
                           echo_filter=not args.no_echo_filter)
        return run_reg(args.vid, args.pid, args.interface)
    except KeyboardInterrupt:
        print("\nExiting...")
        return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
