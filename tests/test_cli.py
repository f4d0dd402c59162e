"""
Command line tests
"""

from unittest.mock import patch

from kmsynth import __main__ as cli
from kmsynth.engine import fluidsynth_engine


def test_config_path(capsys, tmp_path, monkeypatch):
    monkeypatch.setenv('KMSYNTH_CONFIG', str(tmp_path / "rig.yaml"))
    assert cli.main(['config', 'path']) == 0
    assert str(tmp_path / "rig.yaml") in capsys.readouterr().out


def test_config_init_and_show(capsys, tmp_path):
    path = tmp_path / "config.yaml"
    assert cli.main(['--config', str(path), 'config', 'init']) == 0
    assert path.exists()
    assert cli.main(['--config', str(path), 'config', 'init']) == 0
    out = capsys.readouterr().out
    assert "Created default config" in out
    assert "Config already exists" in out

    assert cli.main(['--config', str(path), 'config', 'show']) == 0
    out = capsys.readouterr().out
    assert "driver: alsa" in out
    assert "period_size: 444" in out


def test_missing_dependencies(capsys):
    with patch.object(fluidsynth_engine, 'fluidsynth', None):
        ok, missing = cli.check_dependencies()
        assert not ok
        assert any('pyfluidsynth' in m for m in missing)
        assert cli.main([]) == 1
    assert "Missing Dependencies" in capsys.readouterr().out


def test_parser_options():
    args = cli.build_parser().parse_args(['-s', 'piano.sf2', '-d', 'jack', '-v'])
    assert args.soundfont == 'piano.sf2'
    assert args.driver == 'jack'
    assert args.verbose is True
    assert args.command is None
