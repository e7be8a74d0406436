"""
Tests for the announcements operator CLI

Validates:
- status, paths, config and schedule read a given --config
- convert runs the pipeline once and refuses while a run is active
- version
"""

import pytest

from announcements_frame import __version__, cli
from announcements_frame.services import announcements_convert
from announcements_frame.services.common.markers import FileMarkerStore
from conftest import FakeConverter


@pytest.fixture
def conf_file(tmp_path):
    base = tmp_path / 'srv'
    conf = tmp_path / 'announcements.conf'
    conf.write_text(
        f"base_dir = {base}\n"
        f"mode_file = {tmp_path / 'mode'}\n"
        f"display_state_file = {tmp_path / 'display'}\n"
        "mon = 08:00-12:00\n"
        "output_width = 64\n"
        "output_height = 36\n"
    )
    return conf, base


class TestReadCommands:
    """Test commands that only report."""

    def test_paths(self, conf_file, capsys):
        """Test that directories follow base_dir from the given config."""
        conf, base = conf_file

        assert cli.main(['--config', str(conf), 'paths']) == 0

        out = capsys.readouterr().out
        assert f"{base / 'inbox'}" in out
        assert f"{base / 'live'}" in out

    def test_status_idle(self, conf_file, capsys):
        """Test status with no runs and no mode written yet."""
        conf, base = conf_file

        assert cli.main(['--config', str(conf), 'status']) == 0

        out = capsys.readouterr().out
        assert 'Run state:        idle' in out
        assert 'Slideshow mode:   unknown' in out

    def test_status_shows_last_result(self, conf_file, capsys):
        """Test that the READY text is printed."""
        conf, base = conf_file
        FileMarkerStore(base / 'inbox').finish_run("Drop folder is now empty.")

        cli.main(['--config', str(conf), 'status'])

        assert 'Drop folder is now empty.' in capsys.readouterr().out

    def test_config_lists_effective_values(self, conf_file, capsys):
        """Test that defaults and parsed schedule appear."""
        conf, base = conf_file

        cli.main(['--config', str(conf), 'config'])

        out = capsys.readouterr().out
        assert 'quiet_seconds = 60' in out
        assert 'output_width = 64' in out
        assert 'mon = 08:00-12:00' in out
        assert 'hdmi_control = true' in out

    def test_schedule(self, conf_file, capsys):
        """Test that the schedule command reports an answer."""
        conf, base = conf_file

        assert cli.main(['--config', str(conf), 'schedule']) == 0
        assert 'Active:' in capsys.readouterr().out

    def test_version(self, capsys):
        """Test the version string."""
        assert cli.main(['version']) == 0
        assert __version__ in capsys.readouterr().out

    def test_command_required(self):
        """Test that a bare invocation is a usage error."""
        with pytest.raises(SystemExit):
            cli.main([])


class TestConvertCommand:
    """Test the one-shot conversion."""

    def test_convert_publishes(self, conf_file, monkeypatch):
        """Test a one-shot run with a fake converter and no restart."""
        conf, base = conf_file
        monkeypatch.setattr(announcements_convert, 'ExternalConverter', lambda **kwargs: FakeConverter())
        monkeypatch.setattr(announcements_convert, 'restart_service', lambda *args, **kwargs: True)
        (base / 'inbox').mkdir(parents=True)
        (base / 'inbox' / 'deck.pptx').write_bytes(b'x')

        assert cli.main(['--config', str(conf), 'convert']) == 0
        assert (base / 'live' / 'deck-slide-01.png').exists()

    def test_convert_refuses_while_processing(self, conf_file):
        """Test that a second run is not started."""
        conf, base = conf_file
        FileMarkerStore(base / 'inbox').begin_run()

        assert cli.main(['--config', str(conf), 'convert']) == 2
