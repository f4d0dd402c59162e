"""
FluidSynth Audio Engine Module

Executes synthesizer events against FluidSynth, one library call per event.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Optional

try:
    import fluidsynth
except ImportError:
    fluidsynth = None

from ..config import AudioConfig
from ..control.events import EventType, SynthEvent
from ..errors import ErrorHandler, ErrorSeverity

log = logging.getLogger(__name__)

FLUID_OK = 0
MIDI_CHANNELS = 16

CC_MODULATION = 1
CC_HOLD = 64
CC_REVERB = 91
CC_CHORUS = 93
CC_ALL_NOTES_OFF = 123

TUNING_BANK = 0
TUNING_PROGRAM = 0


def tuning_table(offset: int):
    """Pitch in cents for all 128 keys, shifted by offset/12 of a semitone"""
    return [(key + offset / 12.0) * 100.0 for key in range(128)]


class FluidSynthEngine:
    """FluidSynth engine wrapper"""

    def __init__(self, config: AudioConfig, error_handler: Optional[ErrorHandler] = None):
        self.config = config
        self.error_handler = error_handler or ErrorHandler()
        self.fs = None
        self.sfid: int = -1
        self._initialized = False
        self._handlers: Dict[EventType, Callable[[SynthEvent], bool]] = {
            EventType.NOTE_ON: lambda ev: self.note_on(ev.channel, ev.key, ev.value),
            EventType.NOTE_OFF: lambda ev: self.note_off(ev.channel, ev.key),
            EventType.ALL_NOTES_OFF: lambda ev: self.all_notes_off(ev.channel),
            EventType.PROGRAM_CHANGE: lambda ev: self.program_change(ev.channel, ev.value),
            EventType.TUNING: lambda ev: self.tuning(ev.value),
            EventType.HOLD_ON: lambda ev: self.control_switch(ev.channel, CC_HOLD, True),
            EventType.HOLD_OFF: lambda ev: self.control_switch(ev.channel, CC_HOLD, False),
            EventType.MODULATION_ON: lambda ev: self.control_switch(ev.channel, CC_MODULATION, True),
            EventType.MODULATION_OFF: lambda ev: self.control_switch(ev.channel, CC_MODULATION, False),
            EventType.REVERB_ON: lambda ev: self.control_switch(ev.channel, CC_REVERB, True),
            EventType.REVERB_OFF: lambda ev: self.control_switch(ev.channel, CC_REVERB, False),
            EventType.CHORUS_ON: lambda ev: self.control_switch(ev.channel, CC_CHORUS, True),
            EventType.CHORUS_OFF: lambda ev: self.control_switch(ev.channel, CC_CHORUS, False),
        }

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> bool:
        """Initialize the audio engine"""
        if fluidsynth is None:
            log.error("FluidSynth library not available")
            return False

        try:
            self.fs = fluidsynth.Synth()
            self.fs.setting('audio.periods', self.config.periods)
            self.fs.setting('audio.period-size', self.config.period_size)
            log.info(f"Starting FluidSynth ({self.config.driver})")
            self.fs.start(driver=self.config.driver)
        except Exception as e:
            self.error_handler.handle_error(e, 'fluidsynth_init', ErrorSeverity.HIGH)
            return False

        if self.config.soundfont:
            if not self.load_soundfont(Path(self.config.soundfont)):
                return False

        self._initialized = True
        log.info("✓ FluidSynth ready")
        return True

    def load_soundfont(self, path: Path) -> bool:
        if not path.exists():
            log.error(f"Soundfont not found: {path}")
            return False
        log.info(f"Loading: {path.name}")
        self.sfid = self.fs.sfload(str(path), update_midi_preset=1)
        if self.sfid < 0:
            log.error("Failed to load soundfont")
            return False
        return True

    def dispatch(self, event: SynthEvent) -> bool:
        """Perform the synthesis call for one event; failures are not retried"""
        if not self._initialized:
            log.debug(f"Engine not initialized, dropping {event!r}")
            return False
        try:
            ok = self._handlers[event.type](event)
        except Exception as e:
            self.error_handler.handle_error(e, 'synth_dispatch', ErrorSeverity.LOW,
                                            {'event': repr(event)})
            return False
        if not ok:
            log.debug(f"Synth call failed for {event!r}")
        return ok

    def note_on(self, channel: int, key: int, velocity: int) -> bool:
        return self.fs.noteon(channel, key, velocity) == FLUID_OK

    def note_off(self, channel: int, key: int) -> bool:
        return self.fs.noteoff(channel, key) == FLUID_OK

    def all_notes_off(self, channel: int) -> bool:
        return self.fs.cc(channel, CC_ALL_NOTES_OFF, 0) == FLUID_OK

    def program_change(self, channel: int, program: int) -> bool:
        return self.fs.program_change(channel, program) == FLUID_OK

    def control_switch(self, channel: int, cc: int, on: bool) -> bool:
        return self.fs.cc(channel, cc, 127 if on else 0) == FLUID_OK

    def tuning(self, offset: int) -> bool:
        """Apply a global tuning offset on every MIDI channel"""
        if self.fs.activate_key_tuning(TUNING_BANK, TUNING_PROGRAM, "kmsynth",
                                       tuning_table(offset), True) != FLUID_OK:
            return False
        for channel in range(MIDI_CHANNELS):
            if self.fs.activate_tuning(channel, TUNING_BANK, TUNING_PROGRAM, True) != FLUID_OK:
                return False
        return True

    def shutdown(self):
        """Shutdown the audio engine"""
        if self.fs:
            if self._initialized:
                for channel in range(MIDI_CHANNELS):
                    self.all_notes_off(channel)
            self.fs.delete()
            self.fs = None
            self._initialized = False
