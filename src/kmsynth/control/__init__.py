"""
Control Module

The command interpreter and the synthesizer events it produces.
"""

from .events import EventType, SynthEvent
from .buffers import KeydownOctaveTable, PendingEventStack
from .interpreter import CommandInterpreter, InterpreterMode

__all__ = [
    'EventType',
    'SynthEvent',
    'KeydownOctaveTable',
    'PendingEventStack',
    'CommandInterpreter',
    'InterpreterMode',
]
