#!/usr/bin/env python3
"""
announcements - operator helper for the announcements frame

    announcements status      Run state, last result, mode, power, schedule
    announcements services    systemd state of the frame services
    announcements paths       Resolved directories
    announcements config      Effective configuration (after defaults)
    announcements schedule    Whether the schedule is active now, today's ranges
    announcements convert     Run the publish pipeline once
    announcements version

Every command accepts --config to read a different announcements.conf.
"""

import argparse
import sys
from dataclasses import fields
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from announcements_frame import __version__
from announcements_frame.services.common import paths
from announcements_frame.services.common.config import AnnouncementsConfig, load_config
from announcements_frame.services.common.markers import FileMarkerStore
from announcements_frame.services.common.schedule import DAY_KEYS, day_key_for, is_active_now
from announcements_frame.services.common.shared_state import StateFile
from announcements_frame.services.common.system import get_service_status


def _config(args) -> AnnouncementsConfig:
    return load_config(Path(args.config) if args.config else None)


def cmd_status(args) -> int:
    config = _config(args)
    markers = FileMarkerStore(config.inbox_dir)
    now = datetime.now()

    print(f"Run state:        {markers.run_state().value}")
    print(f"Slideshow mode:   {StateFile(config.mode_file).read() or 'unknown'}")
    print(f"Display power:    {StateFile(config.display_state_file).read() or 'unknown'}")
    print(f"Schedule active:  {'yes' if is_active_now(config.schedule, now) else 'no'}")

    ready = markers.ready_text()
    if ready:
        print()
        print("Last result:")
        for line in ready.splitlines():
            print(f"  {line}")
    return 0


def cmd_services(args) -> int:
    for service in paths.FRAME_SERVICES:
        print(f"{service:<36} {get_service_status(service) or 'unknown'}")
    return 0


def cmd_paths(args) -> int:
    config = _config(args)
    rows = [
        ('config', config.config_path),
        ('base', config.base_dir),
        ('inbox', config.inbox_dir),
        ('live', config.live_dir),
        ('off', config.off_dir),
        ('logs', config.log_dir),
        ('tmp', config.temp_dir),
        ('mode file', config.mode_file),
        ('display state', config.display_state_file),
    ]
    for label, path in rows:
        print(f"{label:<14} {path}")
    return 0


def _format_value(value) -> str:
    if isinstance(value, frozenset):
        return ' '.join(sorted(value))
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def cmd_config(args) -> int:
    config = _config(args)
    for config_field in fields(config):
        if config_field.name == 'schedule':
            continue
        print(f"{config_field.name} = {_format_value(getattr(config, config_field.name))}")
    for day in DAY_KEYS:
        ranges = config.schedule.ranges_for(day)
        print(f"{day} = {','.join(str(r) for r in ranges)}")
    return 0


def cmd_schedule(args) -> int:
    config = _config(args)
    now = datetime.now()
    today = day_key_for(now)
    ranges = config.schedule.ranges_for(today)

    print(f"Now:     {now.strftime('%a %H:%M')}")
    print(f"Today:   {', '.join(str(r) for r in ranges) if ranges else '(no ranges)'}")
    print(f"Active:  {'yes' if is_active_now(config.schedule, now) else 'no'}")
    return 0


def cmd_convert(args) -> int:
    # Imported here so the other commands do not configure service logging
    from announcements_frame.services.announcements_convert import convert_once

    return convert_once(_config(args))


def cmd_version(args) -> int:
    print(f"announcements-frame {__version__}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='announcements',
        description='Announcements frame operator helper',
    )
    parser.add_argument(
        '--config',
        help=f"Path to announcements.conf (default: {paths.CONFIG_FILE})"
    )

    subparsers = parser.add_subparsers(dest='command', required=True, help='Command to execute')

    commands = [
        ('status', 'Show run state, last result, mode and power', cmd_status),
        ('services', 'Show systemd state of the frame services', cmd_services),
        ('paths', 'Show resolved directories', cmd_paths),
        ('config', 'Show the effective configuration', cmd_config),
        ('schedule', 'Show whether the schedule is active now', cmd_schedule),
        ('convert', 'Run the publish pipeline once', cmd_convert),
        ('version', 'Show the installed version', cmd_version),
    ]
    for name, help_text, func in commands:
        subparser = subparsers.add_parser(name, help=help_text)
        subparser.set_defaults(func=func)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
