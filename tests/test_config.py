"""
Tests for announcements.conf parsing

Validates:
- Comment stripping, whitespace trimming, case-insensitive keys
- Last matching line wins
- Typed getters fall back to defaults on missing or malformed values
- Directory defaults follow base_dir
- Missing config file yields the defaults
"""

from pathlib import Path

import pytest

from announcements_frame.services.common.config import (
    AnnouncementsConfig,
    ConfigStore,
    build_config,
    load_config,
)
from announcements_frame.services.common.schedule import TimeRange


class TestConfigStoreParsing:
    """Test the raw key = value parser."""

    def test_comments_and_whitespace_are_stripped(self):
        """Test that trailing comments and surrounding blanks are removed."""
        store = ConfigStore.parse(
            "# full line comment\n"
            "   quiet_seconds   =   45    # trailing comment\n"
            "\n"
            "inbox_dir=/data/inbox\n"
        )

        assert store.raw('quiet_seconds') == '45'
        assert store.raw('inbox_dir') == '/data/inbox'

    def test_keys_are_case_insensitive(self):
        """Test that QUIET_SECONDS and quiet_seconds are the same key."""
        store = ConfigStore.parse("QUIET_SECONDS = 12\n")

        assert store.raw('quiet_seconds') == '12'
        assert store.raw('Quiet_Seconds') == '12'

    def test_last_matching_line_wins(self):
        """Test that a later line overrides an earlier one."""
        store = ConfigStore.parse("max_slides = 5\nMAX_SLIDES = 9\n")

        assert store.get_int('max_slides', 0) == 9

    def test_lines_without_equals_are_ignored(self):
        """Test that junk lines do not break parsing."""
        store = ConfigStore.parse("this is not a setting\nhdmi_control = no\n")

        assert list(store.keys()) == ['hdmi_control']


class TestTypedGetters:
    """Test defaulting and validation of typed values."""

    def test_int_falls_back_on_non_numeric(self):
        """Test that a non-numeric integer uses the default."""
        store = ConfigStore({'quiet_seconds': 'sixty'})

        assert store.get_int('quiet_seconds', 60) == 60

    def test_int_rejects_negative_and_below_minimum(self):
        """Test that '-5' and '0' (minimum 1) use the default."""
        store = ConfigStore({'a': '-5', 'b': '0'})

        assert store.get_int('a', 10) == 10
        assert store.get_int('b', 10, minimum=1) == 10

    def test_int_missing_and_empty_use_default(self):
        """Test that absent and empty values use the default."""
        store = ConfigStore({'empty': ''})

        assert store.get_int('empty', 7) == 7
        assert store.get_int('absent', 7) == 7

    @pytest.mark.parametrize("raw,expected", [
        ('true', True), ('YES', True), ('1', True),
        ('false', False), ('No', False), ('0', False),
    ])
    def test_bool_spellings(self, raw, expected):
        """Test the accepted boolean spellings."""
        assert ConfigStore({'flag': raw}).get_bool('flag', not expected) is expected

    def test_bool_unknown_value_uses_default(self):
        """Test that 'maybe' is not a boolean."""
        assert ConfigStore({'flag': 'maybe'}).get_bool('flag', True) is True

    def test_extensions_are_normalized(self):
        """Test that extension lists are lowercased, split and dot-free."""
        store = ConfigStore({'image_extensions': '.JPG, png  jpeg,,'})

        assert store.get_extensions('image_extensions', '') == frozenset({'jpg', 'png', 'jpeg'})

    def test_unknown_color_uses_default(self):
        """Test that a color Pillow does not know falls back."""
        store = ConfigStore({'background_color': 'not-a-colour', 'other': 'white'})

        assert store.get_color('background_color', 'black') == 'black'
        assert store.get_color('other', 'black') == 'white'

    def test_float_falls_back_on_garbage(self):
        """Test that fade_duration accepts decimals and rejects text."""
        store = ConfigStore({'good': '0.5', 'bad': 'slow'})

        assert store.get_float('good', 0.0) == 0.5
        assert store.get_float('bad', 0.0) == 0.0


class TestBuildConfig:
    """Test resolving a store into an AnnouncementsConfig."""

    def test_empty_store_gives_documented_defaults(self):
        """Test the defaults of an empty configuration."""
        config = build_config(ConfigStore())

        assert config.watch_poll_interval == 10
        assert config.quiet_seconds == 60
        assert config.status_interval == 30
        assert config.schedule_poll_interval == 60
        assert (config.output_width, config.output_height) == (1920, 1080)
        assert config.hdmi_control is True
        assert config.off_schedule_slides is False
        assert config.max_slides == 0
        assert config.ppt_extensions == frozenset({'pptx'})
        assert config.image_extensions == frozenset({'jpg', 'jpeg', 'png'})

    def test_directories_follow_base_dir(self):
        """Test that content directories are derived from base_dir."""
        config = build_config(ConfigStore({'base_dir': '/data/frame'}))

        assert config.inbox_dir == Path('/data/frame/inbox')
        assert config.live_dir == Path('/data/frame/live')
        assert config.temp_dir == Path('/data/frame/tmp')
        assert config.inbox_readme_template == Path('/data/frame/config/inbox_readme.txt')

    def test_explicit_directory_overrides_base_dir(self):
        """Test that live_dir wins over the base_dir default."""
        config = build_config(ConfigStore({'base_dir': '/data/frame', 'live_dir': '/mnt/live'}))

        assert config.live_dir == Path('/mnt/live')
        assert config.inbox_dir == Path('/data/frame/inbox')

    def test_off_schedule_dir_alias(self):
        """Test that off_schedule_dir is accepted when off_dir is absent."""
        config = build_config(ConfigStore({'off_schedule_dir': '/mnt/black'}))

        assert config.off_dir == Path('/mnt/black')

    def test_live_watcher_defaults_to_inbox_watcher_values(self):
        """Test that live_* intervals inherit the watcher settings."""
        config = build_config(ConfigStore({'watch_poll_interval': '5', 'quiet_seconds': '20'}))

        assert config.live_poll_interval == 5
        assert config.live_quiet_seconds == 20

    def test_schedule_days_are_parsed(self):
        """Test that mon..sun keys become the schedule table."""
        config = build_config(ConfigStore({'mon': '08:00-12:00, 14:00-17:00', 'sat': ''}))

        assert config.schedule.ranges_for('mon') == (TimeRange(480, 720), TimeRange(840, 1020))
        assert config.schedule.ranges_for('sat') == ()
        assert config.schedule.ranges_for('tue') == ()

    def test_config_is_immutable(self):
        """Test that the snapshot cannot be changed field by field."""
        config = AnnouncementsConfig()

        with pytest.raises(AttributeError):
            config.quiet_seconds = 1


class TestLoadConfig:
    """Test reading the config file from disk."""

    def test_missing_file_uses_defaults(self, tmp_path):
        """Test that a missing file is not an error."""
        config = load_config(tmp_path / 'missing.conf')

        assert config.quiet_seconds == 60
        assert config.config_path == tmp_path / 'missing.conf'

    def test_reads_file(self, tmp_path):
        """Test a small real config file."""
        conf = tmp_path / 'announcements.conf'
        conf.write_text(
            "base_dir = /srv/test\n"
            "hdmi_control = false   # keep the TV awake\n"
            "center_images = no\n"
            "background_color = white\n"
        )

        config = load_config(conf)

        assert config.base_dir == Path('/srv/test')
        assert config.hdmi_control is False
        assert config.center_images is False
        assert config.background_color == 'white'
