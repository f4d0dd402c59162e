"""
Settings Module

Per-channel keyboard settings and their persistence.
"""

from .store import KeyboardSettings, SettingsStore, read_document, write_document

__all__ = [
    'KeyboardSettings',
    'SettingsStore',
    'read_document',
    'write_document',
]
