"""
Keyboard Settings Store

Per-channel performance settings, loaded once at startup and written back to
a YAML document with a trailing debounce: a burst of edits produces a single
write roughly `save_delay` seconds after the last one.
"""

import copy
import os
import threading
import time
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..errors import ErrorHandler, ErrorSeverity, SettingsError

log = logging.getLogger(__name__)

DEFAULT_OCTAVE = 5
DEFAULT_PROGRAM = 0
DEFAULT_VELOCITY = 100
MAX_OCTAVE = 9
MAX_PROGRAM = 127
PROGRAM_COUNT = 128
DEFAULT_SAVE_DELAY = 1.0

KEYBOARDS_KEY = 'keyboards'


@dataclass
class KeyboardSettings:
    """Settings of one channel"""
    octave: int = DEFAULT_OCTAVE
    program_no: int = DEFAULT_PROGRAM
    velocity_per_program: List[int] = field(
        default_factory=lambda: [DEFAULT_VELOCITY] * PROGRAM_COUNT)
    reverb: bool = False
    chorus: bool = False

    def __setattr__(self, name, value):
        # Checked on construction and on every later assignment
        if name == 'octave' and not 0 <= value <= MAX_OCTAVE:
            raise ValueError(f"octave out of range: {value}")
        if name == 'program_no' and not 0 <= value <= MAX_PROGRAM:
            raise ValueError(f"program_no out of range: {value}")
        super().__setattr__(name, value)

    @property
    def velocity(self) -> int:
        """Velocity of the current program"""
        return self.velocity_per_program[self.program_no]

    def to_table(self) -> Dict[str, Any]:
        # velocity_per_program is not persisted
        return {
            'chorus': self.chorus,
            'octave': self.octave,
            'program_no': self.program_no,
            'reverb': self.reverb,
        }

    @classmethod
    def from_table(cls, table: Dict[str, Any]) -> 'KeyboardSettings':
        def integer(key, default, upper):
            value = table.get(key)
            if isinstance(value, bool) or not isinstance(value, int):
                return default
            return value if 0 <= value <= upper else default

        def boolean(key):
            value = table.get(key)
            return value if isinstance(value, bool) else False

        return cls(
            octave=integer('octave', DEFAULT_OCTAVE, MAX_OCTAVE),
            program_no=integer('program_no', DEFAULT_PROGRAM, MAX_PROGRAM),
            reverb=boolean('reverb'),
            chorus=boolean('chorus'),
        )


def read_document(path: Path) -> Dict[str, Any]:
    """Read the settings document; missing or unparsable files read as empty"""
    try:
        with open(path, encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        return {}
    except (OSError, yaml.YAMLError) as e:
        log.warning(f"Failed to read settings {path}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def _key_order(item):
    # Hand-edited documents may mix key types
    return str(item[0])


def write_document(path: Path, keyboards: List[KeyboardSettings]):
    """
    Merge keyboards into the document at path and write it back

    Top-level keys and per-keyboard keys this module does not know about
    are kept.

    Raises:
        SettingsError: if the document cannot be written
    """
    doc = read_document(path)
    tables = doc.get(KEYBOARDS_KEY)
    if not isinstance(tables, list):
        tables = []
    tables = [t if isinstance(t, dict) else {} for t in tables]
    while len(tables) < len(keyboards):
        tables.append({})
    for table, keyboard in zip(tables, keyboards):
        table.update(keyboard.to_table())
    doc[KEYBOARDS_KEY] = [dict(sorted(t.items(), key=_key_order)) for t in tables]

    # The file is not opened until serialization has succeeded
    try:
        text = yaml.safe_dump(dict(sorted(doc.items(), key=_key_order)),
                              default_flow_style=False, sort_keys=False)
    except (yaml.YAMLError, TypeError) as e:
        raise SettingsError(f"cannot serialize {path}: {e}") from e

    tmp_path = path.with_name(path.name + '.tmp')
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, 'w', encoding='utf-8') as f:
            f.write(text)
        os.replace(tmp_path, path)
    except OSError as e:
        raise SettingsError(f"cannot write {path}: {e}") from e


class SettingsStore:
    """In-memory per-channel settings with debounced persistence"""

    def __init__(self, path: Path, keyboards: Optional[List[KeyboardSettings]] = None,
                 save_delay: float = DEFAULT_SAVE_DELAY,
                 error_handler: Optional[ErrorHandler] = None):
        self.path = Path(path)
        self.keyboards: List[KeyboardSettings] = keyboards if keyboards is not None else []
        self.save_delay = save_delay
        self.error_handler = error_handler or ErrorHandler()

        # Shared with the save threads: the token of the latest save request
        self._token_lock = threading.Lock()
        self._last_token = 0
        # Snapshot captured by the latest request not yet written
        self._pending_snapshot: Optional[List[KeyboardSettings]] = None

    @classmethod
    def load(cls, path: Path, **kwargs) -> 'SettingsStore':
        path = Path(path)
        tables = read_document(path).get(KEYBOARDS_KEY)
        keyboards = []
        if isinstance(tables, list):
            keyboards = [KeyboardSettings.from_table(t if isinstance(t, dict) else {})
                         for t in tables]
        log.info(f"Loaded settings for {len(keyboards)} keyboard(s) from {path}")
        return cls(path, keyboards, **kwargs)

    def get_or_create(self, channel: int) -> KeyboardSettings:
        """Settings of a channel, filling any gap with defaults"""
        if channel < 0:
            raise ValueError(f"invalid channel: {channel}")
        while len(self.keyboards) <= channel:
            self.keyboards.append(KeyboardSettings())
        return self.keyboards[channel]

    def snapshot(self) -> List[KeyboardSettings]:
        return copy.deepcopy(self.keyboards)

    def save(self, keyboards: Optional[List[KeyboardSettings]] = None) -> bool:
        """Write settings now. Failures are reported, never raised."""
        try:
            write_document(self.path, keyboards if keyboards is not None else self.keyboards)
            return True
        except SettingsError as e:
            self.error_handler.handle_error(e, 'settings_save', ErrorSeverity.MEDIUM)
            return False

    def queue_save(self) -> threading.Thread:
        """
        Request a debounced save of the current settings

        Only the latest request within the quiet period is written.

        Returns:
            The (already started) thread handling this request
        """
        snapshot = self.snapshot()
        with self._token_lock:
            self._last_token += 1
            token = self._last_token
            self._pending_snapshot = snapshot
        requested_at = time.time()

        thread = threading.Thread(
            target=self._delayed_save,
            args=(token, snapshot, requested_at),
            daemon=True,
            name=f"SettingsSave[{token}]"
        )
        thread.start()
        return thread

    def _delayed_save(self, token: int, snapshot: List[KeyboardSettings], requested_at: float):
        time.sleep(self.save_delay)
        with self._token_lock:
            if token != self._last_token:
                return
            self._pending_snapshot = None
        if self.save(snapshot):
            log.info(f"Settings saved (request at {requested_at:.3f})")

    @property
    def pending(self) -> bool:
        with self._token_lock:
            return self._pending_snapshot is not None

    def flush(self) -> bool:
        """
        Write the pending request immediately and cancel its delayed save

        The snapshot taken by the request is written, so in-memory changes
        made after it (such as a momentary octave revert) stay unsaved.
        """
        with self._token_lock:
            snapshot = self._pending_snapshot
            if snapshot is None:
                return False
            self._last_token += 1
            self._pending_snapshot = None
        return self.save(snapshot)
