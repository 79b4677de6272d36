"""Line buffer — turns arbitrary stdout chunks into complete lines."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

#: Maximum bytes per line from subprocess stdout (1 MB).
DEFAULT_MAX_LINE_BYTES = 1_048_576


class LineBuffer:
    """Accumulates bytes and yields every complete, non-blank line.

    Splitting happens on raw bytes so a multi-byte UTF-8 sequence cut in
    half by a chunk boundary is decoded only once it is whole.
    """

    def __init__(self, max_line_bytes: int = DEFAULT_MAX_LINE_BYTES) -> None:
        self._pending = bytearray()
        self._max_line_bytes = max_line_bytes
        # Set while skipping the tail of an oversized line.
        self._discarding = False

    @property
    def pending_bytes(self) -> int:
        """Number of bytes buffered without a terminating newline."""
        return len(self._pending)

    def feed(self, chunk: bytes) -> list[str]:
        """Append *chunk* and return the lines it completed."""
        self._pending.extend(chunk)
        lines: list[str] = []

        while True:
            idx = self._pending.find(b"\n")
            if idx < 0:
                break
            raw = bytes(self._pending[:idx])
            del self._pending[: idx + 1]

            if self._discarding:
                self._discarding = False
                continue
            line = self._decode(raw)
            if line is not None:
                lines.append(line)

        if len(self._pending) > self._max_line_bytes:
            logger.warning(
                "stdout line exceeds %d bytes, skipping", self._max_line_bytes
            )
            self._pending.clear()
            self._discarding = True

        return lines

    def flush(self) -> list[str]:
        """Return the unterminated remainder as a final line, if any."""
        raw = bytes(self._pending)
        self._pending.clear()
        discarding, self._discarding = self._discarding, False
        if discarding:
            return []
        line = self._decode(raw)
        return [line] if line is not None else []

    def _decode(self, raw: bytes) -> str | None:
        if len(raw) > self._max_line_bytes:
            logger.warning(
                "stdout line exceeds %d bytes, skipping", self._max_line_bytes
            )
            return None
        line = raw.decode(errors="replace").rstrip("\r")
        if not line.strip():
            return None
        return line
