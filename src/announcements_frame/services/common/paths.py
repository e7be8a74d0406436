"""
Announcements Frame - Shared Path Constants

Default file and directory paths used by the frame services. Every directory
below can be overridden in announcements.conf; these are only the fallbacks.

Directory structure:
  /srv/announcements/
    ├── config/
    │   ├── announcements.conf   # key = value configuration
    │   └── inbox_readme.txt     # Template restored into the inbox after each run
    ├── inbox/                   # Drop folder (network share)
    │   ├── README.txt
    │   ├── _READY.txt           # Idle; content = last run result
    │   ├── _PROCESSING.txt      # Run in progress
    │   ├── _FAILED_<ts>.txt     # Left behind by crash recovery
    │   └── _STATUS_<ts>.txt     # Progress snapshot while processing
    ├── live/                    # Published slides (what the viewer shows)
    ├── off_schedule/            # Off-hours deck (e.g. a black slide)
    ├── logs/                    # Per-run conversion logs, kept PDFs
    └── tmp/
        ├── inbox_snapshot/      # Working snapshot of the inbox
        └── staging.XXXXXX/      # Per-run scratch output

  /tmp/
    ├── announcements_slides_mode     # normal | off-deck | none
    └── announcements_display_state   # on | off
"""

import os
from pathlib import Path

# Configuration file (ANNOUNCEMENTS_CONFIG overrides, mainly for testing)
CONFIG_FILE = Path(
    os.environ.get('ANNOUNCEMENTS_CONFIG', '/srv/announcements/config/announcements.conf')
)

# Base directory; the other content directories default to children of it
BASE_DIR = Path('/srv/announcements')
INBOX_DIR_NAME = 'inbox'
LIVE_DIR_NAME = 'live'
OFF_DIR_NAME = 'off_schedule'
LOG_DIR_NAME = 'logs'
TEMP_DIR_NAME = 'tmp'
INBOX_README_TEMPLATE = Path('config') / 'inbox_readme.txt'
INBOX_README_NAME = 'README.txt'

# Scratch directories under temp_dir
SNAPSHOT_DIR_NAME = 'inbox_snapshot'
STAGING_DIR_PREFIX = 'staging.'

# Shared state between the display scheduler and the slideshow launcher.
# These live in /tmp on purpose: a reboot resets the panel, so the
# remembered state must reset with it.
MODE_FILE = Path('/tmp/announcements_slides_mode')
DISPLAY_STATE_FILE = Path('/tmp/announcements_display_state')

# Sysfs knobs for display power. On KMS Raspberry Pi OS the HDMI status node
# is often read-only; writes to it are attempted and may silently no-op.
BACKLIGHT_POWER_FILE = Path('/sys/class/backlight/10-0045/bl_power')
HDMI_STATUS_FILE = Path('/sys/class/drm/card0-HDMI-A-1/status')

# SoC temperature (millidegrees C)
THERMAL_ZONE_FILE = Path('/sys/class/thermal/thermal_zone0/temp')
TEMP_LOG_DIR_NAME = 'pi-temp'
TEMP_LOG_FILE_NAME = 'temps.csv'

# systemd units
SLIDESHOW_SERVICE = 'announcements-slideshow.service'
FRAME_SERVICES = [
    'announcements-watcher.service',
    'announcements-slideshow.service',
    'announcements-display.service',
    'announcements-status.service',
]

# Slideshow viewer
VIEWER_COMMAND = '/usr/bin/pqiv'
