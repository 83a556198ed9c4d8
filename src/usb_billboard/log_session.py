"""
Log console: stream device log text while forwarding typed commands.

Two activities share one device:

  * receive thread — enables logging, then polls request 0x10 for log
    chunks, strips filler, drops the echo of our own commands and prints
    complete lines.
  * send loop (caller's thread) — takes operator lines from a queue fed
    by a stdin reader thread and sends each as a 0x22 command.

Transfers are serialised by the transport.  The two sides share a
pair of ``threading.Event`` flags, ``stop`` and "echo pending", plus a
lock that keeps a fetch and its echo filtering apart from a command
send and the arming of "echo pending".  Either side ending (EOF, fatal transfer error,
Ctrl-C) sets ``stop`` and the other side winds down within one
transfer timeout.
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
from typing import List, Optional, TextIO

from .constants import (
    COMMAND_TERMINATOR,
    DEFAULT_INTERFACE,
    INPUT_POLL_S,
    LOG_CHUNK_SIZE,
    MAX_LINE_BYTES,
    POLL_INTERVAL_S,
    TRANSFER_TIMEOUT_MS,
)
from .device_base import DebugTransport, TransportError
from .protocol import (
    decode_log_chunk,
    encode_enable_log,
    encode_fetch_log,
    encode_send_command,
)

log = logging.getLogger(__name__)

_LF = 0x0A
_CR = 0x0D
_TAB = 0x09
_DEL = 0x7F


class LineAccumulator:
    """Collects log bytes into complete lines.

    LF ends a line; CR is dropped so CRLF and LF read the same.  Other
    control bytes (except TAB) are discarded.  A line that grows past
    ``max_line`` bytes is emitted as-is; the cut waits for the end of a
    multi-byte character, so a forced line may run up to 3 bytes over.
    """

    def __init__(self, max_line: int = MAX_LINE_BYTES):
        self._buf = bytearray()
        self._max_line = max_line

    def feed(self, data: bytes) -> List[str]:
        """Append *data*; return the lines it completed (possibly none)."""
        lines = []
        for b in data:
            if b == _LF:
                lines.append(self._take())
            elif b == _CR or b == _DEL or (b < 0x20 and b != _TAB):
                continue
            else:
                # Cut before the byte that overflows, never inside a UTF-8 sequence
                if len(self._buf) >= self._max_line and b & 0xC0 != 0x80:
                    lines.append(self._take())
                self._buf.append(b)
        return lines

    def flush(self) -> Optional[str]:
        """Return the unterminated tail, if any, and reset."""
        if not self._buf:
            return None
        return self._take()

    @property
    def pending(self) -> int:
        return len(self._buf)

    def _take(self) -> str:
        line = self._buf.decode("utf-8", errors="replace")
        self._buf.clear()
        return line


class EchoFilter:
    """Drops the firmware's echo of a command we just sent.

    While *pending* is set, bytes are discarded up to and including the
    first CR LF; then *pending* is cleared.  CR state carries over
    between chunks.
    """

    def __init__(self, pending: threading.Event):
        self._pending = pending
        self._last_cr = False

    def filter(self, data: bytes) -> bytes:
        out = bytearray()
        for b in data:
            if self._pending.is_set():
                if b == _LF and self._last_cr:
                    self._pending.clear()
            else:
                out.append(b)
            self._last_cr = b == _CR
        return bytes(out)


class LogSession:
    """Log console over one open device.

    Args:
        device: Open transport (shared by both loops).
        stdin: Operator input, read line by line on a daemon thread.
        stdout: Where log lines are written.
        interface: Interface number for the 0x22 index field.
        chunk_size: wLength of each log fetch (firmware dependent).
        echo_filter: Hide the device's echo of sent commands.
    """

    def __init__(self, device: DebugTransport,
                 stdin: Optional[TextIO] = None,
                 stdout: Optional[TextIO] = None,
                 *,
                 interface: int = DEFAULT_INTERFACE,
                 chunk_size: int = LOG_CHUNK_SIZE,
                 echo_filter: bool = True,
                 poll_interval: float = POLL_INTERVAL_S,
                 timeout: int = TRANSFER_TIMEOUT_MS):
        self.device = device
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.interface = interface
        self.chunk_size = chunk_size
        self.poll_interval = poll_interval
        self.timeout = timeout

        self._stop = threading.Event()
        self._echo_pending = threading.Event()
        self._echo_filter = EchoFilter(self._echo_pending) if echo_filter else None
        self._accumulator = LineAccumulator()
        self._lines: "queue.Queue[Optional[str]]" = queue.Queue()
        self._error_lock = threading.Lock()
        self._io_lock = threading.Lock()
        self.error: Optional[TransportError] = None

    # -- Lifecycle -------------------------------------------------------

    def run(self) -> None:
        """Run until EOF, Ctrl-C, stop() or a fatal transfer error.

        Raises:
            TransportError: The first transfer failure that ended the session.
        """
        self.enable_log()

        receiver = threading.Thread(
            target=self._receive_loop, name="log-receive", daemon=True)
        reader = threading.Thread(
            target=self._read_input, name="log-input", daemon=True)
        receiver.start()
        reader.start()

        try:
            self._send_loop()
        except KeyboardInterrupt:
            log.info("Interrupted")
        finally:
            self._stop.set()
            # One in-flight transfer at most, bounded by its timeout
            receiver.join(timeout=self.timeout / 1000 + 1.0)
            if receiver.is_alive():
                log.warning("Receive thread still busy at shutdown")

        if self.error is not None:
            raise self.error

    def stop(self) -> None:
        """Ask both loops to finish (thread-safe)."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    # -- Operations ------------------------------------------------------

    def enable_log(self) -> None:
        """Turn on log output.  Failure is only a warning."""
        try:
            self.device.transfer(encode_enable_log(self.interface), self.timeout)
        except TransportError as e:
            log.warning("Enable log failed (%s), continuing", e)

    def send_command(self, line: str) -> None:
        """Send one operator line, CR-terminated, as a console command."""
        text = line.strip() + COMMAND_TERMINATOR
        request = encode_send_command(text, self.interface)
        # Armed under _io_lock: bytes from a fetch already in flight predate
        # the command and must not be taken for its echo
        with self._io_lock:
            self.device.transfer(request, self.timeout)
            if self._echo_filter is not None:
                self._echo_pending.set()
        log.debug("Sent command %r", text)

    def poll_once(self) -> List[str]:
        """Fetch one chunk and return the lines it completed."""
        request = encode_fetch_log(self.chunk_size)
        with self._io_lock:
            data = decode_log_chunk(self.device.transfer(request, self.timeout))
            if not data:
                return []
            if self._echo_filter is not None:
                data = self._echo_filter.filter(data)
        return self._accumulator.feed(data)

    # -- Loops -----------------------------------------------------------

    def _receive_loop(self) -> None:
        try:
            while not self._stop.is_set():
                try:
                    before = self._accumulator.pending
                    lines = self.poll_once()
                except TransportError as e:
                    self._fail(e)
                    break
                for line in lines:
                    self._emit(line)
                if not lines and self._accumulator.pending == before:
                    self._stop.wait(self.poll_interval)
        finally:
            self._stop.set()
            tail = self._accumulator.flush()
            if tail is not None:
                self._emit(tail)

    def _send_loop(self) -> None:
        while not self._stop.is_set():
            try:
                line = self._lines.get(timeout=INPUT_POLL_S)
            except queue.Empty:
                continue
            if line is None:
                log.info("End of input")
                break
            try:
                self.send_command(line)
            except TransportError as e:
                self._fail(e)
                break

    def _read_input(self) -> None:
        # Blocks in readline(); left behind as a daemon once the session ends
        try:
            for line in iter(self.stdin.readline, ""):
                if self._stop.is_set():
                    return
                self._lines.put(line)
        except (OSError, ValueError) as e:
            log.debug("Input closed: %s", e)
        self._lines.put(None)

    def _emit(self, line: str) -> None:
        self.stdout.write(line + "\n")
        self.stdout.flush()

    def _fail(self, error: TransportError) -> None:
        with self._error_lock:
            if self.error is None:
                self.error = error
                log.info("Stopping session: %s", error)
        self._stop.set()
