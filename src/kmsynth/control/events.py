"""
Synth Events

High-level performance events produced by the command interpreter and
consumed by the synthesizer engine.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class EventType(Enum):
    NOTE_ON = auto()
    NOTE_OFF = auto()
    ALL_NOTES_OFF = auto()
    PROGRAM_CHANGE = auto()
    TUNING = auto()
    HOLD_ON = auto()
    HOLD_OFF = auto()
    MODULATION_ON = auto()
    MODULATION_OFF = auto()
    REVERB_ON = auto()
    REVERB_OFF = auto()
    CHORUS_ON = auto()
    CHORUS_OFF = auto()


@dataclass(frozen=True)
class SynthEvent:
    """One synthesizer command. `value` is the velocity, program or tuning offset."""
    type: EventType
    channel: Optional[int] = None
    key: Optional[int] = None
    value: Optional[int] = None

    @classmethod
    def note_on(cls, channel: int, key: int, velocity: int) -> 'SynthEvent':
        return cls(EventType.NOTE_ON, channel, key, velocity)

    @classmethod
    def note_off(cls, channel: int, key: int) -> 'SynthEvent':
        return cls(EventType.NOTE_OFF, channel, key)

    @classmethod
    def all_notes_off(cls, channel: int) -> 'SynthEvent':
        return cls(EventType.ALL_NOTES_OFF, channel)

    @classmethod
    def program_change(cls, channel: int, program: int) -> 'SynthEvent':
        return cls(EventType.PROGRAM_CHANGE, channel, value=program)

    @classmethod
    def tuning(cls, offset: int) -> 'SynthEvent':
        return cls(EventType.TUNING, value=offset)

    @classmethod
    def hold(cls, channel: int, on: bool) -> 'SynthEvent':
        return cls(EventType.HOLD_ON if on else EventType.HOLD_OFF, channel)

    @classmethod
    def modulation(cls, channel: int, on: bool) -> 'SynthEvent':
        return cls(EventType.MODULATION_ON if on else EventType.MODULATION_OFF, channel)

    @classmethod
    def reverb(cls, channel: int, on: bool) -> 'SynthEvent':
        return cls(EventType.REVERB_ON if on else EventType.REVERB_OFF, channel)

    @classmethod
    def chorus(cls, channel: int, on: bool) -> 'SynthEvent':
        return cls(EventType.CHORUS_ON if on else EventType.CHORUS_OFF, channel)

    @property
    def velocity(self) -> Optional[int]:
        return self.value if self.type is EventType.NOTE_ON else None

    @property
    def is_note_off(self) -> bool:
        return self.type is EventType.NOTE_OFF

    def __repr__(self):
        fields = [str(v) for v in (self.channel, self.key, self.value) if v is not None]
        return f"{self.type.name}({', '.join(fields)})"
