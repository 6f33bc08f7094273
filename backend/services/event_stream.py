from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Optional, Union

EVENT_PROGRESS = "progress"
EVENT_COMPLETE = "complete"
EVENT_ERROR = "error"

BLOCK_DELIMITER = "\n\n"
EVENT_PREFIX = "event: "
DATA_PREFIX = "data: "


# ======================
# Serialization (server)
# ======================


def format_event(name: str, data: Union[str, dict]) -> str:
    """
    Render one event block: ``event: <name>\\ndata: <payload>\\n\\n``.

    dict payloads are JSON encoded, str payloads are written as-is (the
    complete event carries raw CSV text).
    """
    payload = data if isinstance(data, str) else json.dumps(data, separators=(",", ":"))
    return f"{EVENT_PREFIX}{name}\n{DATA_PREFIX}{payload}{BLOCK_DELIMITER}"


def encode_event(name: str, data: Union[str, dict]) -> bytes:
    return format_event(name, data).encode("utf-8")


# ======================
# Parsing (client)
# ======================


@dataclass
class StreamEvent:
    name: str
    data: str

    def json(self) -> Any:
        return json.loads(self.data)


def parse_block(block: str) -> Optional[StreamEvent]:
    """Split a block into its event line and data; None if either is missing."""
    event_line, sep, rest = block.partition("\n")
    if not sep or not event_line.startswith(EVENT_PREFIX) or not rest.startswith(DATA_PREFIX):
        return None
    name = event_line[len(EVENT_PREFIX):].strip()
    if not name:
        return None
    return StreamEvent(name=name, data=rest[len(DATA_PREFIX):])


class EventStreamParser:
    """Incremental block parser; a partial trailing block stays buffered."""

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer

    def feed(self, text: str) -> List[StreamEvent]:
        self._buffer += text
        blocks = self._buffer.split(BLOCK_DELIMITER)
        self._buffer = blocks.pop()

        events: List[StreamEvent] = []
        for block in blocks:
            event = parse_block(block)
            if event is not None:
                events.append(event)
        return events
