"""Transport reader: bytes from a response body -> protocol lines.

Bytes are decoded incrementally so that a multi-byte character split across
two chunks is reassembled. Lines are split on ``\\n``; the trailing partial
segment is carried to the next chunk and dropped at end of stream, since both
providers terminate every payload line.
"""

from __future__ import annotations

import codecs
import logging
from typing import AsyncIterable, AsyncIterator

from paper_architect.core.errors import TransportError

logger = logging.getLogger(__name__)


async def iter_lines(source: AsyncIterable[bytes] | None) -> AsyncIterator[str]:
    """Yield complete decoded lines from an async byte source.

    Raises TransportError when the source is missing or fails mid-read.
    """
    if source is None:
        raise TransportError("No response body")
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    pending = ""
    try:
        async for chunk in source:
            if not chunk:
                continue
            pending += decoder.decode(chunk)
            if "\n" not in pending:
                continue
            *lines, pending = pending.split("\n")
            for line in lines:
                yield line[:-1] if line.endswith("\r") else line
    except Exception as e:
        raise TransportError(f"Response body unreadable: {e}") from e
    pending += decoder.decode(b"", final=True)
    if pending:
        logger.debug("Dropping unterminated trailing line (%d chars)", len(pending))
