"""
Interpreter Buffers

Pending feedback events and the octave each key was pressed in.
"""

from typing import Dict, Iterable, List, Optional

from ..input.codes import KEY_COUNT
from .events import SynthEvent


class PendingEventStack:
    """Last-in-first-out buffer of scripted events.

    pop() returns the most recently pushed event. Use push_sequence() to
    script several events in the order they should be heard.
    """

    def __init__(self):
        self._events: List[SynthEvent] = []

    def push(self, event: SynthEvent):
        self._events.append(event)

    def push_sequence(self, events: Iterable[SynthEvent]):
        """Push events so that they pop in the given order"""
        self._events.extend(reversed(list(events)))

    def pop(self) -> Optional[SynthEvent]:
        return self._events.pop() if self._events else None

    def __len__(self) -> int:
        return len(self._events)

    def __bool__(self) -> bool:
        return bool(self._events)


class KeydownOctaveTable:
    """Octave in effect when each (channel, key) was last pressed, default 0"""

    def __init__(self):
        self._table: Dict[int, List[int]] = {}

    def _row(self, channel: int) -> List[int]:
        row = self._table.get(channel)
        if row is None:
            row = self._table[channel] = [0] * KEY_COUNT
        return row

    def record(self, channel: int, key: int, octave: int):
        self._row(channel)[key] = octave

    def octave_for(self, channel: int, key: int) -> int:
        return self._row(channel)[key]
