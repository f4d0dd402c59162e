"""
Controller State

Tracks which inputs are currently held on each channel by folding edges.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from .codes import Edge, InputKind, KEY_COUNT


@dataclass
class ControllerState:
    """Currently held inputs of one channel"""
    keys: List[bool] = field(default_factory=lambda: [False] * KEY_COUNT)
    wheel_up: bool = False
    wheel_down: bool = False
    start: bool = False
    select: bool = False

    def update(self, edge: Edge):
        held = edge.pressed
        kind = edge.input.kind
        if kind is InputKind.KEY:
            self.keys[edge.input.index] = held
        elif kind is InputKind.WHEEL_UP:
            self.wheel_up = held
        elif kind is InputKind.WHEEL_DOWN:
            self.wheel_down = held
        elif kind is InputKind.START:
            self.start = held
        elif kind is InputKind.SELECT:
            self.select = held

    def reset_select_start(self):
        self.select = False
        self.start = False


class StateTable:
    """Per-channel states, created on first access and kept for the process lifetime"""

    def __init__(self):
        self._states: Dict[int, ControllerState] = {}

    def get(self, channel: int) -> ControllerState:
        state = self._states.get(channel)
        if state is None:
            state = self._states[channel] = ControllerState()
        return state

    def __contains__(self, channel: int) -> bool:
        return channel in self._states

    def __len__(self) -> int:
        return len(self._states)
