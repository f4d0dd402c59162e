"""
kmsynth Application

Wires controller discovery, the command interpreter, persisted settings and
the FluidSynth engine into one running synthesizer.
"""

import logging
from typing import Optional

from .config import FullConfig
from .control.interpreter import CommandInterpreter
from .engine.fluidsynth_engine import FluidSynthEngine
from .errors import ErrorHandler, ErrorSeverity, InvalidInputCodeError, StreamClosedError
from .input.device_manager import ControllerDeviceManager
from .input.stream import EventStream
from .settings.store import SettingsStore

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL_INPUT = 2
EXIT_INTERRUPTED = 130


class KmSynth:
    """Controller-driven synthesizer"""

    def __init__(self, config: FullConfig, engine: Optional[FluidSynthEngine] = None,
                 stream: Optional[EventStream] = None):
        self.config = config
        self.error_handler = ErrorHandler()
        self.stream = stream or EventStream()
        self.engine = engine or FluidSynthEngine(config.audio, self.error_handler)
        self.settings: Optional[SettingsStore] = None
        self.interpreter: Optional[CommandInterpreter] = None
        self.device_manager = ControllerDeviceManager(
            self.stream,
            device_name=config.controller.name,
            key_count=config.controller.key_count,
            scan_interval=config.controller.scan_interval,
            error_handler=self.error_handler,
        )

    def initialize(self, start_discovery: bool = True) -> bool:
        """Load settings, start the engine and begin controller discovery"""
        log.info("Initializing kmsynth...")
        self.settings = SettingsStore.load(
            self.config.settings.resolved_path(),
            save_delay=self.config.settings.save_delay,
            error_handler=self.error_handler,
        )
        self.interpreter = CommandInterpreter(self.settings, self.stream,
                                              pacing=self.config.feedback.pacing)

        if not self.engine.initialize():
            log.error("Audio engine failed to start")
            return False

        if start_discovery and not self.device_manager.start_hotplug_monitoring():
            log.error("Controller discovery unavailable")
            return False
        return True

    def run(self) -> int:
        """
        Dispatch events until input ends

        Returns:
            Process exit code
        """
        for event in self.interpreter.initial_events():
            self.engine.dispatch(event)

        try:
            while True:
                self.engine.dispatch(self.interpreter.recv())
        except StreamClosedError:
            log.info("No more input producers, stopping")
            return EXIT_OK
        except InvalidInputCodeError as e:
            self.error_handler.handle_error(e, 'input_decode', ErrorSeverity.CRITICAL)
            return EXIT_FATAL_INPUT
        except KeyboardInterrupt:
            log.info("Interrupted")
            return EXIT_INTERRUPTED

    def stop(self):
        log.info("Stopping kmsynth...")
        self.device_manager.stop_monitoring()
        if self.settings is not None and self.settings.flush():
            log.info("✓ Pending settings written")
        self.engine.shutdown()
        log.info("✓ Stopped")
