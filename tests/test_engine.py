"""
FluidSynth engine tests against a mocked fluidsynth module
"""

import unittest
from unittest.mock import Mock, patch

from kmsynth.config import AudioConfig
from kmsynth.control.events import SynthEvent
from kmsynth.engine import fluidsynth_engine
from kmsynth.engine.fluidsynth_engine import FluidSynthEngine, tuning_table


class TestFluidSynthEngine(unittest.TestCase):
    """Test one synthesis call per event"""

    def setUp(self):
        self.module = Mock()
        self.fs = self.module.Synth.return_value
        for name in ('noteon', 'noteoff', 'cc', 'program_change',
                     'activate_key_tuning', 'activate_tuning'):
            getattr(self.fs, name).return_value = 0
        patcher = patch.object(fluidsynth_engine, 'fluidsynth', self.module)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.engine = FluidSynthEngine(AudioConfig(driver="alsa", soundfont=None))
        self.assertTrue(self.engine.initialize())

    def test_initialize_applies_audio_settings(self):
        self.fs.setting.assert_any_call('audio.periods', 4)
        self.fs.setting.assert_any_call('audio.period-size', 444)
        self.fs.start.assert_called_once_with(driver="alsa")

    def test_note_events(self):
        self.assertTrue(self.engine.dispatch(SynthEvent.note_on(1, 60, 100)))
        self.fs.noteon.assert_called_once_with(1, 60, 100)
        self.assertTrue(self.engine.dispatch(SynthEvent.note_off(1, 60)))
        self.fs.noteoff.assert_called_once_with(1, 60)

    def test_program_change(self):
        self.engine.dispatch(SynthEvent.program_change(2, 40))
        self.fs.program_change.assert_called_once_with(2, 40)

    def test_switches_map_to_controllers(self):
        cases = [
            (SynthEvent.reverb(0, True), (0, 91, 127)),
            (SynthEvent.reverb(0, False), (0, 91, 0)),
            (SynthEvent.chorus(1, True), (1, 93, 127)),
            (SynthEvent.modulation(2, True), (2, 1, 127)),
            (SynthEvent.hold(3, False), (3, 64, 0)),
            (SynthEvent.all_notes_off(4), (4, 123, 0)),
        ]
        for event, args in cases:
            self.fs.cc.reset_mock()
            self.assertTrue(self.engine.dispatch(event))
            self.fs.cc.assert_called_once_with(*args)

    def test_tuning_applies_to_all_channels(self):
        self.assertTrue(self.engine.dispatch(SynthEvent.tuning(3)))
        self.fs.activate_key_tuning.assert_called_once()
        pitch = self.fs.activate_key_tuning.call_args[0][3]
        self.assertEqual(len(pitch), 128)
        self.assertAlmostEqual(pitch[60], 6025.0)
        self.assertEqual(self.fs.activate_tuning.call_count, 16)

    def test_failure_reported_not_retried(self):
        self.fs.noteon.return_value = -1
        self.assertFalse(self.engine.dispatch(SynthEvent.note_on(0, 131, 100)))
        self.fs.noteon.assert_called_once()

    def test_exception_is_handled(self):
        self.fs.cc.side_effect = RuntimeError("synth gone")
        self.assertFalse(self.engine.dispatch(SynthEvent.reverb(0, True)))
        stats = self.engine.error_handler.get_error_statistics()
        self.assertEqual(stats['error_counts'], {'synth_dispatch': 1})

    def test_shutdown_silences_and_deletes(self):
        self.engine.shutdown()
        self.assertEqual(self.fs.cc.call_count, 16)
        self.fs.delete.assert_called_once()
        self.assertFalse(self.engine.initialized)
        self.assertFalse(self.engine.dispatch(SynthEvent.note_on(0, 60, 100)))


def test_missing_library():
    with patch.object(fluidsynth_engine, 'fluidsynth', None):
        engine = FluidSynthEngine(AudioConfig())
        assert engine.initialize() is False
        assert engine.dispatch(SynthEvent.note_on(0, 60, 100)) is False


def test_missing_soundfont(tmp_path):
    module = Mock()
    with patch.object(fluidsynth_engine, 'fluidsynth', module):
        engine = FluidSynthEngine(AudioConfig(soundfont=str(tmp_path / "none.sf2")))
        assert engine.initialize() is False
    module.Synth.return_value.sfload.assert_not_called()


def test_soundfont_loaded(tmp_path):
    sf2 = tmp_path / "piano.sf2"
    sf2.write_bytes(b"RIFF")
    module = Mock()
    module.Synth.return_value.sfload.return_value = 1
    with patch.object(fluidsynth_engine, 'fluidsynth', module):
        engine = FluidSynthEngine(AudioConfig(soundfont=str(sf2)))
        assert engine.initialize() is True
    module.Synth.return_value.sfload.assert_called_once_with(str(sf2), update_midi_preset=1)
    assert engine.sfid == 1


def test_tuning_table_offset_zero_is_equal_temperament():
    table = tuning_table(0)
    assert table[0] == 0.0
    assert table[69] == 6900.0
