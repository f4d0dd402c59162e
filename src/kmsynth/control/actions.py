"""
Interpreter Actions

Helpers shared by the mode handlers: chord decoding, velocity levels,
octave arithmetic and the scripted feedback sequences.
"""

from typing import List, Optional, Sequence

from ..settings.store import KeyboardSettings, SettingsStore, MAX_OCTAVE, MAX_PROGRAM
from .buffers import PendingEventStack
from .events import SynthEvent

PERCUSSION_CHANNEL = 9
PERCUSSION_VELOCITY = 127
CONFIG_MODE_CUE = 42
PERFORMANCE_MODE_CUE = 36
PROGRAM_CUE = 69
TOGGLE_ARPEGGIO = (72, 76, 79)

# Keys 5..11 spell a 7-bit number, key 5 being the most significant bit
PROGRAM_KEY_WEIGHTS = ((5, 64), (6, 32), (7, 16), (8, 8), (9, 4), (10, 2), (11, 1))
PROGRAM_KEYS = range(5, 12)

VELOCITY_LEVELS = {
    12: 127 - 9 * 6,
    14: 127 - 9 * 5,
    16: 127 - 9 * 4,
    17: 127 - 9 * 3,
    19: 127 - 9 * 2,
    21: 127 - 9,
    23: 127,
}


def virtual_key(key: int, octave: int) -> int:
    return key + octave * 12


def key_to_program_no(keys: Sequence[bool]) -> int:
    """
    Decode the program number from the keys held in 5..11

    Raises:
        ValueError: if none of the program keys is held (there is no program -1)
    """
    value = sum(weight for key, weight in PROGRAM_KEY_WEIGHTS if keys[key])
    if value == 0:
        raise ValueError("no program key held")
    return value - 1


def velocity_for_key(key: int) -> Optional[int]:
    return VELOCITY_LEVELS.get(key)


def set_program_velocity(settings: SettingsStore, channel: int, key: int) -> bool:
    """Set the current program's velocity from a level key; False if key is not one"""
    velocity = velocity_for_key(key)
    if velocity is None:
        return False
    keyboard = settings.get_or_create(channel)
    keyboard.velocity_per_program[keyboard.program_no] = velocity
    settings.queue_save()
    return True


def next_program(program_no: int, step: int) -> int:
    return (program_no + step) % (MAX_PROGRAM + 1)


def program_change(settings: SettingsStore, pending: PendingEventStack,
                   channel: int, program_no: int) -> SynthEvent:
    keyboard = settings.get_or_create(channel)
    keyboard.program_no = program_no
    settings.queue_save()
    pending.push_sequence(blip(channel, PROGRAM_CUE, keyboard.velocity))
    return SynthEvent.program_change(channel, program_no)


def blip(channel: int, note: int, velocity: int) -> List[SynthEvent]:
    return [SynthEvent.note_on(channel, note, velocity), SynthEvent.note_off(channel, note)]


def program_arpeggio(keyboard: KeyboardSettings, channel: int) -> List[SynthEvent]:
    """Spell program_no + 1 on keys 5..11 as a rising arpeggio"""
    value = keyboard.program_no + 1
    events: List[SynthEvent] = []
    for key, weight in PROGRAM_KEY_WEIGHTS:
        if value & weight:
            events.extend(blip(channel, virtual_key(key, keyboard.octave), keyboard.velocity))
    return events


def percussion(pending: PendingEventStack, entering_configuration: bool) -> SynthEvent:
    note = CONFIG_MODE_CUE if entering_configuration else PERFORMANCE_MODE_CUE
    pending.push(SynthEvent.note_off(PERCUSSION_CHANNEL, note))
    return SynthEvent.note_on(PERCUSSION_CHANNEL, note, PERCUSSION_VELOCITY)


def toggle_sfx(channel: int, turned_on: bool, velocity: int) -> List[SynthEvent]:
    notes = TOGGLE_ARPEGGIO if turned_on else tuple(reversed(TOGGLE_ARPEGGIO))
    events: List[SynthEvent] = []
    for note in notes:
        events.extend(blip(channel, note, velocity))
    return events


def toggle_reverb(settings: SettingsStore, pending: PendingEventStack, channel: int) -> SynthEvent:
    keyboard = settings.get_or_create(channel)
    keyboard.reverb = not keyboard.reverb
    settings.queue_save()
    pending.push_sequence(toggle_sfx(channel, keyboard.reverb, keyboard.velocity))
    return SynthEvent.reverb(channel, keyboard.reverb)


def toggle_chorus(settings: SettingsStore, pending: PendingEventStack, channel: int) -> SynthEvent:
    keyboard = settings.get_or_create(channel)
    keyboard.chorus = not keyboard.chorus
    settings.queue_save()
    pending.push_sequence(toggle_sfx(channel, keyboard.chorus, keyboard.velocity))
    return SynthEvent.chorus(channel, keyboard.chorus)


def octave_shift_up_without_save(settings: SettingsStore, channel: int) -> bool:
    keyboard = settings.get_or_create(channel)
    if keyboard.octave >= MAX_OCTAVE:
        return False
    keyboard.octave += 1
    return True


def octave_shift_down_without_save(settings: SettingsStore, channel: int) -> bool:
    keyboard = settings.get_or_create(channel)
    if keyboard.octave == 0:
        return False
    keyboard.octave -= 1
    return True


def octave_shift_up(settings: SettingsStore, channel: int):
    if octave_shift_up_without_save(settings, channel):
        settings.queue_save()


def octave_shift_down(settings: SettingsStore, channel: int):
    if octave_shift_down_without_save(settings, channel):
        settings.queue_save()
