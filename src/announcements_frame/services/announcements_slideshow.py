#!/usr/bin/env python3
"""
Announcements Slideshow Launcher

Started (and restarted) by systemd as announcements-slideshow.service. Reads
the mode written by the display service and replaces itself with a
fullscreen pqiv on the matching deck:

    normal (or unknown)  -> live_dir
    off-deck             -> off_dir   ('off' is accepted from older installs)
    none                 -> no viewer; exit 0

It does not look at the schedule or the panel power; it only picks the
directory and the viewer options.
"""

import os
import sys
from pathlib import Path
from typing import List, Optional

from announcements_frame.services.announcements_display import SlideMode
from announcements_frame.services.common.config import AnnouncementsConfig, load_config
from announcements_frame.services.common.logging_config import setup_service_logging
from announcements_frame.services.common.shared_state import StateFile

logger = setup_service_logging('announcements-slideshow')

LEGACY_OFF_MODE = 'off'


def normalize_mode(raw: Optional[str]) -> str:
    if raw is None:
        return SlideMode.NORMAL
    mode = raw.strip().lower()
    if mode == LEGACY_OFF_MODE:
        return SlideMode.OFF_DECK
    if mode in SlideMode.ALL:
        return mode
    return SlideMode.NORMAL


def deck_for_mode(config: AnnouncementsConfig, mode: str) -> Optional[Path]:
    """Directory to show for `mode`, or None when no slideshow should run."""
    if mode == SlideMode.NONE:
        return None
    if mode == SlideMode.OFF_DECK:
        return config.off_dir
    return config.live_dir


def format_duration(seconds: float) -> str:
    return f"{seconds:g}"


def build_viewer_args(config: AnnouncementsConfig, deck: Path) -> List[str]:
    """pqiv: fullscreen, slideshow, hide cursor, fade, scale to fit."""
    args = [config.viewer_command, '-f', '-s', '-d', str(config.slide_duration), '-F', '-t']
    if config.slideshow_sort == 'natural':
        args.append('-n')
    if config.slideshow_hide_info:
        args.append('-i')
    args.append(f"--fade-duration={format_duration(config.fade_duration)}")
    args.append(str(deck))
    return args


def main():
    """Pick the deck and exec the viewer."""
    config = load_config()
    mode = normalize_mode(StateFile(config.mode_file).read())

    deck = deck_for_mode(config, mode)
    if deck is None:
        logger.info("Slideshow mode is 'none'; not starting a viewer")
        sys.exit(0)

    args = build_viewer_args(config, deck)
    logger.info(f"Mode {mode}: showing {deck}")
    try:
        os.execv(args[0], args)
    except OSError as e:
        logger.error(f"Could not start viewer {args[0]}: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
