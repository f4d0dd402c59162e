"""
Controller Code Decoder

Maps raw evdev key codes reported by the controller to semantic inputs.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from ..errors import InvalidInputCodeError

KEY_COUNT = 24

# Codes the controller reports that carry no musical meaning
IGNORED_CODES = range(745, 751)


class InputKind(Enum):
    KEY = auto()
    WHEEL_UP = auto()
    WHEEL_DOWN = auto()
    START = auto()
    SELECT = auto()


@dataclass(frozen=True)
class Input:
    """A decoded controller input. `index` is only set for keys."""
    kind: InputKind
    index: Optional[int] = None

    @classmethod
    def key(cls, index: int) -> 'Input':
        if not 0 <= index < KEY_COUNT:
            raise ValueError(f"key index out of range: {index}")
        return cls(InputKind.KEY, index)

    @property
    def is_key(self) -> bool:
        return self.kind is InputKind.KEY

    def __repr__(self):
        if self.is_key:
            return f"Key({self.index})"
        return self.kind.name.title().replace('_', '')


WHEEL_UP = Input(InputKind.WHEEL_UP)
WHEEL_DOWN = Input(InputKind.WHEEL_DOWN)
START = Input(InputKind.START)
SELECT = Input(InputKind.SELECT)


@dataclass(frozen=True)
class Edge:
    """One hardware transition: a press or a release of an input"""
    pressed: bool
    input: Input

    @classmethod
    def press(cls, input: Input) -> 'Edge':
        return cls(True, input)

    @classmethod
    def release(cls, input: Input) -> 'Edge':
        return cls(False, input)

    def is_press_of(self, input: Input) -> bool:
        return self.pressed and self.input == input

    def is_release_of(self, input: Input) -> bool:
        return not self.pressed and self.input == input

    def __repr__(self):
        return f"{'Press' if self.pressed else 'Release'}({self.input!r})"


def decode(raw: int) -> Optional[Input]:
    """
    Decode a raw key code

    Key index 15 is reachable from both 320 and 704.

    Returns:
        The decoded input, or None for codes that are ignored

    Raises:
        InvalidInputCodeError: for any code outside the known ranges
    """
    if 304 <= raw <= 316:
        return Input.key(raw - 304)
    if raw == 317:
        return SELECT
    if 318 <= raw <= 320:
        return Input.key(raw - 318 + 13)
    if 704 <= raw <= 707:
        return Input.key(raw - 704 + 15)
    if raw == 708:
        return START
    if 709 <= raw <= 713:
        return Input.key(raw - 709 + 19)
    if raw == 714:
        return WHEEL_UP
    if raw == 715:
        return WHEEL_DOWN
    if raw in IGNORED_CODES:
        return None
    raise InvalidInputCodeError(raw)


def edge_from_event(code: int, value: int) -> Optional[Edge]:
    """Build an edge from an EV_KEY event; value 0 is a release, anything else a press"""
    input = decode(code)
    if input is None:
        return None
    return Edge.release(input) if value == 0 else Edge.press(input)
