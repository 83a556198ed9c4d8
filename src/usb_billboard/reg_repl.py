"""
Register shell: read and write device registers interactively.

Commands (numbers are hex, ``0x`` optional)::

    r <addr> <offset>            read 8 bytes at addr/offset
    w <addr> <offset> <value>    write one byte
    q | quit | exit              leave

Bad input and failed transfers are reported and the shell carries on.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, Sequence, TextIO

from .constants import TRANSFER_TIMEOUT_MS
from .device_base import DebugTransport, TransportError
from .parsing import ParseError, parse_u8, parse_u16, split_command
from .protocol import (
    decode_register_reply,
    encode_read_register,
    encode_write_register,
)

log = logging.getLogger(__name__)

WRITE_DONE = "[WRITE] Done"

QUIT_COMMANDS = frozenset({"q", "quit", "exit"})

HELP_TEXT = (
    "--- Register shell ---\n"
    "  r <addr> <offset>\n"
    "  w <addr> <offset> <value>\n"
    "  q / quit / exit\n"
    "----------------------"
)


def format_read(addr: int, offset: int, data: bytes) -> str:
    """``[READ 00::0100] 1E 04 00 00 00 00 00 00`` in device order."""
    body = " ".join(f"{b:02X}" for b in data) if data else "(no data)"
    return f"[READ {addr:02X}::{offset:04X}] {body}"


class RegisterRepl:
    """Line-oriented register shell over an open device."""

    def __init__(self, device: DebugTransport,
                 stdin: Optional[TextIO] = None,
                 stdout: Optional[TextIO] = None,
                 stderr: Optional[TextIO] = None,
                 *,
                 prompt: str = "> ",
                 timeout: int = TRANSFER_TIMEOUT_MS):
        self.device = device
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr
        self.prompt = prompt
        self.timeout = timeout

    def run(self) -> None:
        """Read commands until quit or end of input."""
        while True:
            self.stdout.write(self.prompt)
            self.stdout.flush()
            line = self.stdin.readline()
            if not line:
                log.info("End of input")
                return
            if not self.execute(line):
                return

    def execute(self, line: str) -> bool:
        """Run one command line.  Returns False when the shell should exit."""
        tokens = split_command(line)
        if not tokens:
            return True
        cmd, args = tokens[0].lower(), tokens[1:]
        if cmd in QUIT_COMMANDS and not args:
            return False

        try:
            if cmd == "r" and len(args) == 2:
                self.read(*self._parse_location(args))
            elif cmd == "w" and len(args) == 3:
                addr, offset = self._parse_location(args)
                self.write(addr, offset, parse_u8(args[2], "value"))
            else:
                raise ParseError(f"Bad command: {line.strip()!r}")
        except ParseError as e:
            self._error(str(e))
        except TransportError as e:
            self._error(f"Error: {e}")
        return True

    def read(self, addr: int, offset: int) -> bytes:
        reply = self.device.transfer(encode_read_register(addr, offset), self.timeout)
        data = decode_register_reply(reply)
        self._print(format_read(addr, offset, data))
        return data

    def write(self, addr: int, offset: int, value: int) -> None:
        # Success is the transfer completing; the reply carries no data
        self.device.transfer(encode_write_register(addr, offset, value), self.timeout)
        self._print(WRITE_DONE)

    @staticmethod
    def _parse_location(args: Sequence[str]):
        return parse_u8(args[0], "address"), parse_u16(args[1], "offset")

    def _print(self, text: str) -> None:
        self.stdout.write(text + "\n")
        self.stdout.flush()

    def _error(self, text: str) -> None:
        self.stderr.write(text + "\n")
        self.stderr.flush()
