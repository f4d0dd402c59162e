"""
Audio Engine Module

Synthesizer backend that consumes interpreter events.
"""

from .fluidsynth_engine import FluidSynthEngine

__all__ = ['FluidSynthEngine']
