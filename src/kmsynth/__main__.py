#!/usr/bin/env python3
"""
kmsynth command line entry point
"""

import argparse
import signal
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from . import config as config_module
from .log import setup_logging


def check_dependencies() -> Tuple[bool, List[str]]:
    """Check for required native dependencies and return status"""
    from .engine import fluidsynth_engine
    from .input import device_manager

    missing = []
    if device_manager.evdev is None:
        missing.append("evdev (pip install evdev)")
    if fluidsynth_engine.fluidsynth is None:
        missing.append("pyfluidsynth (pip install pyfluidsynth) and libfluidsynth")
    return len(missing) == 0, missing


def print_missing(missing: List[str]):
    print("\n╔══════════════════════════════════════════════════════════════╗")
    print("║  kmsynth - Missing Dependencies                              ║")
    print("╠══════════════════════════════════════════════════════════════╣")
    for dep in missing:
        print(f"║  • {dep:<58}║")
    print("╚══════════════════════════════════════════════════════════════╝\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kmsynth",
        description="kmsynth - play FluidSynth from USB game controllers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                           # Use ~/.config/kmsynth/config.yaml
  %(prog)s --soundfont /path/to.sf2  # Custom soundfont
  %(prog)s --driver jack             # Use JACK audio
  %(prog)s config init               # Write a default config file

Controls:
  Select + Start      switch performance / configuration mode
  Wheel               octave shift (hold Start to keep it)
  Key 1 + keys 5-11   program change (configuration mode)
        """
    )
    parser.add_argument('--config', '-c', help="Path to config file")
    parser.add_argument('--soundfont', '-s', help="Path to SoundFont file (.sf2)")
    parser.add_argument('--driver', '-d',
                        choices=['alsa', 'pulseaudio', 'jack', 'pipewire'],
                        help="Audio driver (default: from config)")
    parser.add_argument('--verbose', '-v', action='store_true', help="Debug logging")
    parser.add_argument('--log-file', type=Path, help="Also log to this file")

    sub = parser.add_subparsers(dest='command')
    cfg = sub.add_parser('config', help="Manage the configuration file")
    cfg.add_argument('action', choices=['init', 'show', 'path'],
                     help="init (create default), show (display current), path (show config path)")
    return parser


def config_command(args) -> int:
    path = Path(args.config) if args.config else config_module.get_config_path()
    if args.action == 'init':
        if not config_module.create_default_config(path):
            print(f"Config already exists: {path}")
        else:
            print(f"Created default config: {path}")
    elif args.action == 'path':
        print(path)
    elif args.action == 'show':
        print(config_module.dump_config(config_module.load_config(str(path))), end='')
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, log_file=args.log_file)

    if args.command == 'config':
        return config_command(args)

    ok, missing = check_dependencies()
    if not ok:
        print_missing(missing)
        return 1

    from .app import KmSynth

    config = config_module.load_config(args.config)
    if args.soundfont:
        config.audio.soundfont = args.soundfont
    if args.driver:
        config.audio.driver = args.driver

    synth = KmSynth(config)

    def signal_handler(sig, frame):
        raise KeyboardInterrupt

    signal.signal(signal.SIGTERM, signal_handler)

    try:
        if not synth.initialize():
            return 1
        return synth.run()
    finally:
        synth.stop()


if __name__ == "__main__":
    sys.exit(main())
