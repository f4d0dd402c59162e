"""
kmsynth Configuration Module
============================
YAML configuration for the audio backend, controller discovery and
settings persistence.
"""

import os
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

log = logging.getLogger(__name__)

APP_NAME = 'kmsynth'
CONFIG_ENV = 'KMSYNTH_CONFIG'


# Default configuration as YAML template
DEFAULT_CONFIG_YAML = """# kmsynth Configuration
# =====================
# Place in ~/.config/kmsynth/config.yaml (or point KMSYNTH_CONFIG at it)

# Audio settings
audio:
  driver: alsa        # alsa, pulseaudio, jack, pipewire
  periods: 4
  period_size: 444
  soundfont: /usr/share/sounds/sf2/FluidR3_GM.sf2

# Controller discovery
controller:
  name: KONAMI USB Multipurpose Controller
  key_count: 34       # number of key codes the unit advertises
  scan_interval: 3.0  # seconds between device rescans

# Per-channel settings (octave, program, reverb, chorus)
settings:
  path: null          # null = ~/.config/kmsynth/keyboards.yaml
  save_delay: 1.0     # seconds of quiet before settings are written

# Audible feedback
feedback:
  pacing: 0.1         # seconds each scripted confirmation note sounds
"""


def get_config_dir() -> Path:
    xdg_config = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
    return Path(xdg_config) / APP_NAME


def get_config_path() -> Path:
    """Get the configuration file path"""
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return Path(env_path)
    return get_config_dir() / 'config.yaml'


def default_settings_path() -> Path:
    return get_config_dir() / 'keyboards.yaml'


@dataclass
class AudioConfig:
    driver: str = "alsa"
    periods: int = 4
    period_size: int = 444
    soundfont: Optional[str] = "/usr/share/sounds/sf2/FluidR3_GM.sf2"


@dataclass
class ControllerConfig:
    name: str = "KONAMI USB Multipurpose Controller"
    key_count: int = 34
    scan_interval: float = 3.0


@dataclass
class SettingsConfig:
    path: Optional[str] = None
    save_delay: float = 1.0

    def resolved_path(self) -> Path:
        return Path(self.path).expanduser() if self.path else default_settings_path()


@dataclass
class FeedbackConfig:
    pacing: float = 0.1


@dataclass
class FullConfig:
    audio: AudioConfig = field(default_factory=AudioConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    settings: SettingsConfig = field(default_factory=SettingsConfig)
    feedback: FeedbackConfig = field(default_factory=FeedbackConfig)


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name)
    return section if isinstance(section, dict) else {}


def create_default_config(path: Optional[Path] = None) -> bool:
    """Create default configuration file; False if one already exists"""
    config_path = path or get_config_path()
    if config_path.exists():
        log.info(f"Config already exists: {config_path}")
        return False
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_YAML)
    log.info(f"Created default config: {config_path}")
    return True


def load_config(path: Optional[str] = None) -> FullConfig:
    """Load configuration from YAML file"""
    config_path = Path(path) if path else get_config_path()
    config = FullConfig()

    if not config_path.exists():
        return config

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)

        if not data:
            return config
        if not isinstance(data, dict):
            raise ValueError("top level must be a mapping")

        audio = _section(data, 'audio')
        config.audio = AudioConfig(
            driver=audio.get('driver', 'alsa'),
            periods=int(audio.get('periods', 4)),
            period_size=int(audio.get('period_size', 444)),
            soundfont=audio.get('soundfont', AudioConfig.soundfont)
        )

        ctrl = _section(data, 'controller')
        config.controller = ControllerConfig(
            name=ctrl.get('name', ControllerConfig.name),
            key_count=int(ctrl.get('key_count', 34)),
            scan_interval=float(ctrl.get('scan_interval', 3.0))
        )

        settings = _section(data, 'settings')
        config.settings = SettingsConfig(
            path=settings.get('path'),
            save_delay=float(settings.get('save_delay', 1.0))
        )

        feedback = _section(data, 'feedback')
        config.feedback = FeedbackConfig(
            pacing=float(feedback.get('pacing', 0.1))
        )

        log.info(f"Loaded config: {config_path}")
        return config

    except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
        log.warning(f"Failed to load config: {e}")
        return FullConfig()


def save_config(config: FullConfig, path: Optional[str] = None) -> Path:
    """Save configuration to YAML file"""
    config_path = Path(path) if path else get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.safe_dump(asdict(config), f, default_flow_style=False, sort_keys=False)

    log.info(f"Saved config: {config_path}")
    return config_path


def dump_config(config: FullConfig) -> str:
    return yaml.safe_dump(asdict(config), default_flow_style=False, sort_keys=False)
