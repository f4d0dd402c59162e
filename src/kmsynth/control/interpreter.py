"""
Command Interpreter

Turns the ordered stream of controller edges into synthesizer events.

Select + Start on any controller switches the mode for every channel:

Performance mode
    Keys                    play notes
    WheelUp / WheelDown     momentary octave shift (down / up), reverted on release
    Start + Wheel           permanent octave shift
    Select                  modulation (vibrato) while held

Configuration mode
    Key 1 + keys 5..11      program change, spelled in binary
    Key 1 + Wheel           previous / next program
    Key 1 + level key       velocity of the current program
    Key 1 (re-press)        replay the current program number as an arpeggio
    Start + Key             global tuning offset
    Key 13 / Key 15         toggle reverb / chorus
"""

import time
import logging
from enum import Enum
from typing import List, Optional, Union

from ..input.codes import Edge, InputKind, SELECT, WHEEL_DOWN, WHEEL_UP
from ..input.state import ControllerState, StateTable
from ..input.stream import EventStream
from ..settings.store import SettingsStore
from . import actions
from .buffers import KeydownOctaveTable, PendingEventStack
from .events import SynthEvent

log = logging.getLogger(__name__)

SHIFT_KEY = 1
REVERB_KEY = 13
CHORUS_KEY = 15
TUNING_CENTER_KEY = 12
DEFAULT_PACING = 0.1


class InterpreterMode(Enum):
    PERFORMANCE = "performance"
    CONFIGURATION = "configuration"


class _Consumed:
    """Marker for an edge a handler used up without producing an event"""

    def __repr__(self):
        return "CONSUMED"


CONSUMED = _Consumed()

HandlerResult = Union[SynthEvent, _Consumed, None]


class CommandInterpreter:
    """Stateful interpreter over the controller event stream"""

    def __init__(self, settings: SettingsStore, stream: EventStream,
                 pacing: float = DEFAULT_PACING,
                 mode: InterpreterMode = InterpreterMode.PERFORMANCE):
        self.settings = settings
        self.stream = stream
        self.pacing = pacing
        self.mode = mode
        self.states = StateTable()
        self.keydown_octaves = KeydownOctaveTable()
        self.pending = PendingEventStack()

    def initial_events(self) -> List[SynthEvent]:
        """Events that bring the synthesizer in line with the stored settings"""
        events = []
        for channel, keyboard in enumerate(self.settings.keyboards):
            events.append(SynthEvent.program_change(channel, keyboard.program_no))
            events.append(SynthEvent.reverb(channel, keyboard.reverb))
            events.append(SynthEvent.chorus(channel, keyboard.chorus))
        return events

    def recv(self) -> SynthEvent:
        """
        Produce the next synthesizer event, blocking for input as needed

        Scripted feedback is drained first; each scripted note-off is
        delayed by `pacing` seconds so the sequence is audible.

        Raises:
            StreamClosedError: when every input producer is gone
            InvalidInputCodeError: forwarded from a device reader
        """
        event = self.pending.pop()
        if event is not None:
            if event.is_note_off and self.pacing > 0:
                time.sleep(self.pacing)
            return event

        while True:
            channel, edge = self.stream.receive()
            state = self.states.get(channel)
            state.update(edge)

            if state.select and state.start:
                return self._toggle_mode(state, channel)

            if self.mode is InterpreterMode.CONFIGURATION:
                result = self._configuration_action(state, channel, edge)
            else:
                result = self._performance_action(state, channel, edge)

            if result is CONSUMED:
                continue
            if result is not None:
                return result

            event = self._common_action(channel, edge)
            if event is not None:
                return event

    def _toggle_mode(self, state: ControllerState, channel: int) -> SynthEvent:
        if self.mode is InterpreterMode.PERFORMANCE:
            self.mode = InterpreterMode.CONFIGURATION
        else:
            self.mode = InterpreterMode.PERFORMANCE
        state.reset_select_start()
        log.info(f"Mode -> {self.mode.value} (channel {channel})")
        return actions.percussion(self.pending, self.mode is InterpreterMode.CONFIGURATION)

    def _configuration_action(self, state: ControllerState, channel: int,
                              edge: Edge) -> HandlerResult:
        key_release = edge.input.is_key and not edge.pressed
        if state.keys[SHIFT_KEY] and not key_release:
            return self._shift_action(channel, edge)

        if state.start:
            if edge.pressed and edge.input.is_key:
                return SynthEvent.tuning(edge.input.index - TUNING_CENTER_KEY)
            return CONSUMED

        if edge.pressed and edge.input.is_key:
            if edge.input.index == REVERB_KEY:
                return actions.toggle_reverb(self.settings, self.pending, channel)
            if edge.input.index == CHORUS_KEY:
                return actions.toggle_chorus(self.settings, self.pending, channel)
        return None

    def _shift_action(self, channel: int, edge: Edge) -> HandlerResult:
        """Configuration commands qualified by holding key 1"""
        if not edge.pressed:
            return CONSUMED

        if edge.input.is_key:
            key = edge.input.index
            if key == SHIFT_KEY:
                return self._replay_program(channel)
            if key in actions.PROGRAM_KEYS:
                program_no = actions.key_to_program_no(self.states.get(channel).keys)
                return actions.program_change(self.settings, self.pending, channel, program_no)
            if actions.set_program_velocity(self.settings, channel, key):
                keyboard = self.settings.get_or_create(channel)
                log.info(f"Channel {channel}: program {keyboard.program_no} "
                         f"velocity {keyboard.velocity}")
            return CONSUMED

        if edge.input == WHEEL_DOWN or edge.input == WHEEL_UP:
            step = -1 if edge.input == WHEEL_DOWN else 1
            current = self.settings.get_or_create(channel).program_no
            return actions.program_change(self.settings, self.pending, channel,
                                          actions.next_program(current, step))
        return CONSUMED

    def _replay_program(self, channel: int) -> HandlerResult:
        events = actions.program_arpeggio(self.settings.get_or_create(channel), channel)
        if not events:
            return CONSUMED
        self.pending.push_sequence(events[1:])
        return events[0]

    def _performance_action(self, state: ControllerState, channel: int,
                            edge: Edge) -> HandlerResult:
        if edge.is_press_of(WHEEL_UP):
            actions.octave_shift_down(self.settings, channel)
            return CONSUMED
        if edge.is_press_of(WHEEL_DOWN):
            actions.octave_shift_up(self.settings, channel)
            return CONSUMED
        if not state.start:
            # Undo the press-time shift in memory only
            if edge.is_release_of(WHEEL_UP):
                actions.octave_shift_up_without_save(self.settings, channel)
                return CONSUMED
            if edge.is_release_of(WHEEL_DOWN):
                actions.octave_shift_down_without_save(self.settings, channel)
                return CONSUMED
        if edge.input == SELECT:
            return SynthEvent.modulation(channel, edge.pressed)
        return None

    def _common_action(self, channel: int, edge: Edge) -> Optional[SynthEvent]:
        if edge.input.kind is not InputKind.KEY:
            return None
        key = edge.input.index
        if edge.pressed:
            keyboard = self.settings.get_or_create(channel)
            self.keydown_octaves.record(channel, key, keyboard.octave)
            return SynthEvent.note_on(channel, actions.virtual_key(key, keyboard.octave),
                                      keyboard.velocity)
        octave = self.keydown_octaves.octave_for(channel, key)
        return SynthEvent.note_off(channel, actions.virtual_key(key, octave))
