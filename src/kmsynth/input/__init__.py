"""
Input Module

Controller code decoding, per-channel held state, the shared event stream
and hot-plug device discovery.
"""

from .codes import (
    Input,
    InputKind,
    Edge,
    WHEEL_UP,
    WHEEL_DOWN,
    START,
    SELECT,
    decode,
    edge_from_event,
)
from .state import ControllerState, StateTable
from .stream import EventStream, StreamProducer
from .device_manager import ChannelRegistry, ControllerDeviceManager

__all__ = [
    'Input',
    'InputKind',
    'Edge',
    'WHEEL_UP',
    'WHEEL_DOWN',
    'START',
    'SELECT',
    'decode',
    'edge_from_event',
    'ControllerState',
    'StateTable',
    'EventStream',
    'StreamProducer',
    'ChannelRegistry',
    'ControllerDeviceManager',
]
