"""
kmsynth - Multi-channel FluidSynth controller for USB game controllers
======================================================================

Repurposes one or more KONAMI USB multipurpose controllers as performance
keyboards: units are discovered while running, mapped to channels, and their
buttons interpreted as notes, program changes, octave shifts, tuning and
effect toggles. Per-channel settings persist across restarts.

Main entry point: __main__.py
Configuration: config.py
"""

__version__ = "1.0.0"
__description__ = "Multi-channel FluidSynth controller for USB game controllers"

from .config import FullConfig, load_config, save_config, create_default_config

__all__ = [
    'FullConfig',
    'load_config',
    'save_config',
    'create_default_config',
    '__version__',
]
