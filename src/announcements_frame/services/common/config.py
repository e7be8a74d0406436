"""
Announcements Frame - Configuration

announcements.conf is a flat, line-oriented file:

    # comment
    inbox_dir      = /srv/announcements/inbox
    quiet_seconds  = 60        # trailing comments are stripped
    hdmi_control   = yes
    mon            = 08:00-12:00,14:00-17:00

Keys are case-insensitive and the last matching line wins, so later lines can
override earlier ones. A value that is missing, empty or malformed falls back
to its default rather than failing the service.

ConfigStore holds the raw key/value pairs and does the typed lookups;
load_config() turns them into an immutable AnnouncementsConfig snapshot.
Services that reload configuration build a new snapshot and swap it in.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Optional

from PIL import ImageColor

from announcements_frame.services.common import paths
from announcements_frame.services.common.schedule import DAY_KEYS, ScheduleTable

logger = logging.getLogger(__name__)

TRUE_VALUES = {'true', 'yes', '1'}
FALSE_VALUES = {'false', 'no', '0'}

_UINT_RE = re.compile(r'^[0-9]+$')

# Defaults
DEFAULT_WATCH_POLL_INTERVAL = 10
DEFAULT_QUIET_SECONDS = 60
DEFAULT_STATUS_INTERVAL = 30
DEFAULT_SCHEDULE_POLL_INTERVAL = 60
DEFAULT_OUTPUT_WIDTH = 1920
DEFAULT_OUTPUT_HEIGHT = 1080
DEFAULT_BACKGROUND_COLOR = 'black'
DEFAULT_PPT_EXTENSIONS = 'pptx'
DEFAULT_IMAGE_EXTENSIONS = 'jpg jpeg png'
DEFAULT_PDF_DENSITY = 150
DEFAULT_SLIDE_DURATION = 10
DEFAULT_FADE_DURATION = 0.0


class ConfigStore:
    """Raw key/value pairs from announcements.conf with typed, defaulting getters."""

    def __init__(self, values: Optional[Dict[str, str]] = None):
        self._values = dict(values or {})

    @classmethod
    def parse(cls, text: str) -> 'ConfigStore':
        values = {}
        for line in text.splitlines():
            line = line.split('#', 1)[0].strip()
            if not line or '=' not in line:
                continue
            key, value = line.split('=', 1)
            key = key.strip().lower()
            if not key:
                continue
            values[key] = value.strip()
        return cls(values)

    @classmethod
    def from_file(cls, config_path: Path) -> 'ConfigStore':
        """
        Read a config file. A missing or unreadable file yields an empty
        store, so every lookup returns its default.
        """
        try:
            text = Path(config_path).read_text(encoding='utf-8', errors='replace')
        except FileNotFoundError:
            logger.warning(f"Config file not found: {config_path} (using defaults)")
            return cls()
        except OSError as e:
            logger.error(f"Error reading config file {config_path}: {e} (using defaults)")
            return cls()
        return cls.parse(text)

    def raw(self, key: str) -> Optional[str]:
        return self._values.get(key.lower())

    def keys(self):
        return self._values.keys()

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self.raw(key)
        if not value:
            return default
        return value

    def get_path(self, key: str, default: Path) -> Path:
        value = self.raw(key)
        return Path(value) if value else default

    def get_int(self, key: str, default: int, minimum: int = 0) -> int:
        """Non-negative integer (digits only); anything else falls back to default."""
        value = self.raw(key)
        if value is None or value == '':
            return default
        if not _UINT_RE.match(value) or int(value) < minimum:
            logger.warning(f"Ignoring invalid value for {key}: '{value}' (using {default})")
            return default
        return int(value)

    def get_float(self, key: str, default: float) -> float:
        value = self.raw(key)
        if not value:
            return default
        try:
            number = float(value)
        except ValueError:
            logger.warning(f"Ignoring invalid value for {key}: '{value}' (using {default})")
            return default
        if number < 0:
            logger.warning(f"Ignoring negative value for {key}: '{value}' (using {default})")
            return default
        return number

    def get_bool(self, key: str, default: bool) -> bool:
        value = self.raw(key)
        if not value:
            return default
        lowered = value.lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        logger.warning(f"Ignoring invalid boolean for {key}: '{value}' (using {default})")
        return default

    def get_choice(self, key: str, choices: FrozenSet[str], default: str) -> str:
        value = self.raw(key)
        if not value:
            return default
        lowered = value.lower()
        if lowered not in choices:
            logger.warning(f"Ignoring invalid value for {key}: '{value}' (using {default})")
            return default
        return lowered

    def get_extensions(self, key: str, default: str) -> FrozenSet[str]:
        """Space/comma separated extension list, lowercased, leading dots dropped."""
        value = self.get_str(key, default)
        extensions = {
            item.strip().lstrip('.').lower()
            for item in re.split(r'[\s,]+', value)
        }
        extensions.discard('')
        return frozenset(extensions)

    def get_color(self, key: str, default: str) -> str:
        value = self.get_str(key, default)
        try:
            ImageColor.getrgb(value)
        except ValueError:
            logger.warning(f"Ignoring unknown color for {key}: '{value}' (using {default})")
            return default
        return value


@dataclass(frozen=True)
class AnnouncementsConfig:
    """Immutable snapshot of announcements.conf."""

    config_path: Path = paths.CONFIG_FILE

    # Directories
    base_dir: Path = paths.BASE_DIR
    inbox_dir: Path = paths.BASE_DIR / paths.INBOX_DIR_NAME
    live_dir: Path = paths.BASE_DIR / paths.LIVE_DIR_NAME
    off_dir: Path = paths.BASE_DIR / paths.OFF_DIR_NAME
    log_dir: Path = paths.BASE_DIR / paths.LOG_DIR_NAME
    temp_dir: Path = paths.BASE_DIR / paths.TEMP_DIR_NAME
    inbox_readme_template: Path = paths.BASE_DIR / paths.INBOX_README_TEMPLATE

    # Inbox / live watchers
    watch_poll_interval: int = DEFAULT_WATCH_POLL_INTERVAL
    quiet_seconds: int = DEFAULT_QUIET_SECONDS
    live_poll_interval: int = DEFAULT_WATCH_POLL_INTERVAL
    live_quiet_seconds: int = DEFAULT_QUIET_SECONDS

    # Conversion
    output_width: int = DEFAULT_OUTPUT_WIDTH
    output_height: int = DEFAULT_OUTPUT_HEIGHT
    background_color: str = DEFAULT_BACKGROUND_COLOR
    center_images: bool = True
    keep_pdfs: bool = True
    ppt_extensions: FrozenSet[str] = frozenset({'pptx'})
    image_extensions: FrozenSet[str] = frozenset({'jpg', 'jpeg', 'png'})
    max_slides: int = 0
    pdf_density: int = DEFAULT_PDF_DENSITY
    soffice_command: str = 'soffice'
    imagemagick_command: str = 'convert'

    # Status reporter
    status_interval: int = DEFAULT_STATUS_INTERVAL

    # Schedule / display
    schedule_poll_interval: int = DEFAULT_SCHEDULE_POLL_INTERVAL
    hdmi_control: bool = True
    off_schedule_slides: bool = False
    schedule: ScheduleTable = field(default_factory=ScheduleTable)
    mode_file: Path = paths.MODE_FILE
    display_state_file: Path = paths.DISPLAY_STATE_FILE
    backlight_path: Path = paths.BACKLIGHT_POWER_FILE
    hdmi_status_path: Path = paths.HDMI_STATUS_FILE

    # Services
    slideshow_service: str = paths.SLIDESHOW_SERVICE
    restart_use_sudo: bool = True

    # Slideshow viewer
    viewer_command: str = paths.VIEWER_COMMAND
    slide_duration: int = DEFAULT_SLIDE_DURATION
    fade_duration: float = DEFAULT_FADE_DURATION
    slideshow_sort: str = 'natural'
    slideshow_hide_info: bool = True


def build_config(store: ConfigStore, config_path: Path = paths.CONFIG_FILE) -> AnnouncementsConfig:
    """Resolve a ConfigStore into a typed AnnouncementsConfig snapshot."""
    base_dir = store.get_path('base_dir', paths.BASE_DIR)

    # Content directories follow base_dir unless set explicitly
    off_dir = store.get_path(
        'off_dir', store.get_path('off_schedule_dir', base_dir / paths.OFF_DIR_NAME)
    )

    watch_poll_interval = store.get_int('watch_poll_interval', DEFAULT_WATCH_POLL_INTERVAL, minimum=1)
    quiet_seconds = store.get_int('quiet_seconds', DEFAULT_QUIET_SECONDS, minimum=1)

    return AnnouncementsConfig(
        config_path=Path(config_path),
        base_dir=base_dir,
        inbox_dir=store.get_path('inbox_dir', base_dir / paths.INBOX_DIR_NAME),
        live_dir=store.get_path('live_dir', base_dir / paths.LIVE_DIR_NAME),
        off_dir=off_dir,
        log_dir=store.get_path('log_dir', base_dir / paths.LOG_DIR_NAME),
        temp_dir=store.get_path('temp_dir', base_dir / paths.TEMP_DIR_NAME),
        inbox_readme_template=store.get_path(
            'inbox_readme_template', base_dir / paths.INBOX_README_TEMPLATE
        ),
        watch_poll_interval=watch_poll_interval,
        quiet_seconds=quiet_seconds,
        live_poll_interval=store.get_int('live_poll_interval', watch_poll_interval, minimum=1),
        live_quiet_seconds=store.get_int('live_quiet_seconds', quiet_seconds, minimum=1),
        output_width=store.get_int('output_width', DEFAULT_OUTPUT_WIDTH, minimum=1),
        output_height=store.get_int('output_height', DEFAULT_OUTPUT_HEIGHT, minimum=1),
        background_color=store.get_color('background_color', DEFAULT_BACKGROUND_COLOR),
        center_images=store.get_bool('center_images', True),
        keep_pdfs=store.get_bool('keep_pdfs', True),
        ppt_extensions=store.get_extensions('ppt_extensions', DEFAULT_PPT_EXTENSIONS),
        image_extensions=store.get_extensions('image_extensions', DEFAULT_IMAGE_EXTENSIONS),
        max_slides=store.get_int('max_slides', 0),
        pdf_density=store.get_int('pdf_density', DEFAULT_PDF_DENSITY, minimum=1),
        soffice_command=store.get_str('soffice_command', 'soffice'),
        imagemagick_command=store.get_str('imagemagick_command', 'convert'),
        status_interval=store.get_int('status_interval', DEFAULT_STATUS_INTERVAL, minimum=1),
        schedule_poll_interval=store.get_int(
            'schedule_poll_interval', DEFAULT_SCHEDULE_POLL_INTERVAL, minimum=1
        ),
        hdmi_control=store.get_bool('hdmi_control', True),
        off_schedule_slides=store.get_bool('off_schedule_slides', False),
        schedule=ScheduleTable.from_config_values({day: store.raw(day) for day in DAY_KEYS}),
        mode_file=store.get_path('mode_file', paths.MODE_FILE),
        display_state_file=store.get_path('display_state_file', paths.DISPLAY_STATE_FILE),
        backlight_path=store.get_path('backlight_path', paths.BACKLIGHT_POWER_FILE),
        hdmi_status_path=store.get_path('hdmi_status_path', paths.HDMI_STATUS_FILE),
        slideshow_service=store.get_str('slideshow_service', paths.SLIDESHOW_SERVICE),
        restart_use_sudo=store.get_bool('restart_use_sudo', True),
        viewer_command=store.get_str('viewer_command', paths.VIEWER_COMMAND),
        slide_duration=store.get_int('slide_duration', DEFAULT_SLIDE_DURATION, minimum=1),
        fade_duration=store.get_float('fade_duration', DEFAULT_FADE_DURATION),
        slideshow_sort=store.get_choice('slideshow_sort', frozenset({'natural', 'none'}), 'natural'),
        slideshow_hide_info=store.get_bool('slideshow_hide_info', True),
    )


def load_config(config_path: Optional[Path] = None) -> AnnouncementsConfig:
    """Read announcements.conf and return a fresh immutable snapshot."""
    config_path = Path(config_path) if config_path else paths.CONFIG_FILE
    return build_config(ConfigStore.from_file(config_path), config_path)
