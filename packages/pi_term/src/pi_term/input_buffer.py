"""
InputBuffer splits terminal input into complete sequences.

Input read from the terminal arrives in arbitrary chunks, so an escape
sequence such as the SGR mouse report `\\x1b[<35;20;5m` can be split across
two reads. The buffer accumulates input until a sequence is complete and
pulls bracketed pastes out as a single chunk.

Unlike a callback-driven reader, the buffer is fed synchronously once per
poll and returns the chunks in arrival order. A trailing incomplete sequence
stays buffered; if nothing completes it within the escape timeout it is
released as-is on a later poll (a lone ESC becomes the Escape key).
"""

from __future__ import annotations

import codecs
import time
from dataclasses import dataclass, field
from typing import Callable, Literal

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

SequenceStatus = Literal["complete", "incomplete", "not-escape"]


def _csi_status(data: str) -> SequenceStatus:
    """CSI: ESC [ params... final byte in 0x40-0x7E."""
    if len(data) < 3:
        return "incomplete"

    payload = data[2:]

    # Linux console function keys: ESC [ [ A
    if payload == "[":
        return "incomplete"

    # Parameters (including SGR mouse '<') sit below 0x40, so the first
    # byte in range ends the sequence whatever it turns out to mean
    final = payload[-1]
    if not 0x40 <= ord(final) <= 0x7E:
        return "incomplete"
    return "complete"


def _string_terminated(data: str, allow_bel: bool) -> SequenceStatus:
    """OSC/DCS/APC: terminated by ST (ESC \\) or, for OSC, BEL."""
    if data.endswith(f"{ESC}\\") and len(data) > 3:
        return "complete"
    if allow_bel and data.endswith("\x07"):
        return "complete"
    return "incomplete"


def is_complete_sequence(data: str) -> SequenceStatus:
    """Check whether data is one complete escape sequence or needs more input."""
    if not data.startswith(ESC):
        return "not-escape"

    if len(data) == 1:
        return "incomplete"

    introducer = data[1]

    if introducer == "[":
        # X10 mouse: ESC [ M followed by three raw bytes
        if data.startswith(f"{ESC}[M"):
            return "complete" if len(data) >= 6 else "incomplete"
        return _csi_status(data)

    if introducer == "]":
        return _string_terminated(data, allow_bel=True)

    if introducer in ("P", "_"):
        return _string_terminated(data, allow_bel=False)

    # SS3: ESC O + one character
    if introducer == "O":
        return "complete" if len(data) >= 3 else "incomplete"

    # Meta: ESC + one character, anything longer is unknown but complete
    return "complete"


@dataclass
class ExtractResult:
    """Complete sequences split off a buffer plus the incomplete tail."""
    sequences: list[str] = field(default_factory=list)
    remainder: str = ""


def extract_complete_sequences(buffer: str) -> ExtractResult:
    """Split a buffer into complete sequences and an incomplete remainder."""
    sequences: list[str] = []
    pos = 0

    while pos < len(buffer):
        if buffer[pos] != ESC:
            sequences.append(buffer[pos])
            pos += 1
            continue

        end = pos + 1
        while True:
            if end > len(buffer):
                return ExtractResult(sequences=sequences, remainder=buffer[pos:])
            status = is_complete_sequence(buffer[pos:end])
            if status == "incomplete":
                end += 1
                continue
            sequences.append(buffer[pos:end])
            pos = end
            break

    return ExtractResult(sequences=sequences, remainder="")


@dataclass(frozen=True)
class InputChunk:
    """One complete unit of input: an escape sequence/character, or a paste."""
    kind: Literal["sequence", "paste"]
    data: str


class InputBuffer:
    """
    Accumulates terminal input and returns complete chunks in arrival order.

    Usage:
        buffer = InputBuffer(escape_timeout_ms=10.0)
        chunks = buffer.flush_expired() + buffer.feed(os.read(fd, 4096))
    """

    def __init__(
        self,
        escape_timeout_ms: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._timeout = escape_timeout_ms / 1000.0
        self._clock = clock
        self._decoder = codecs.getincrementaldecoder("utf-8")("replace")
        self._buffer = ""
        self._pending_since: float | None = None
        self._paste_mode = False
        self._paste_buffer = ""

    @property
    def pending(self) -> str:
        """Buffered input that does not form a complete sequence yet."""
        return self._buffer

    @property
    def in_paste(self) -> bool:
        return self._paste_mode

    def feed(self, data: str | bytes) -> list[InputChunk]:
        """Add input and return every chunk it completes."""
        if isinstance(data, bytes):
            data = self._decoder.decode(data)
        if not data:
            return []

        chunks: list[InputChunk] = []
        self._buffer += data

        while self._buffer:
            if self._paste_mode:
                self._paste_buffer += self._buffer
                self._buffer = ""
                end = self._paste_buffer.find(BRACKETED_PASTE_END)
                if end == -1:
                    break
                chunks.append(InputChunk("paste", self._paste_buffer[:end]))
                self._buffer = self._paste_buffer[end + len(BRACKETED_PASTE_END):]
                self._paste_buffer = ""
                self._paste_mode = False
                continue

            start = self._buffer.find(BRACKETED_PASTE_START)
            if start == -1:
                result = extract_complete_sequences(self._buffer)
                chunks.extend(InputChunk("sequence", s) for s in result.sequences)
                self._buffer = result.remainder
                break

            if start > 0:
                result = extract_complete_sequences(self._buffer[:start])
                chunks.extend(InputChunk("sequence", s) for s in result.sequences)
                if result.remainder:
                    chunks.append(InputChunk("sequence", result.remainder))
            self._buffer = self._buffer[start + len(BRACKETED_PASTE_START):]
            self._paste_mode = True

        if self._buffer:
            if self._pending_since is None:
                self._pending_since = self._clock()
        else:
            self._pending_since = None
        return chunks

    def flush_expired(self) -> list[InputChunk]:
        """Release a stale incomplete sequence once the escape timeout passed."""
        if not self._buffer or self._pending_since is None:
            return []
        if self._clock() - self._pending_since < self._timeout:
            return []
        return self.flush()

    def flush(self) -> list[InputChunk]:
        """Release whatever is buffered as a single sequence."""
        self._pending_since = None
        if not self._buffer:
            return []
        data, self._buffer = self._buffer, ""
        return [InputChunk("sequence", data)]

    def clear(self) -> None:
        """Drop buffered input and any unfinished paste."""
        self._decoder.reset()
        self._buffer = ""
        self._pending_since = None
        self._paste_mode = False
        self._paste_buffer = ""
