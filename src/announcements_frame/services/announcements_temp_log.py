#!/usr/bin/env python3
"""
Announcements Temperature Log

Oneshot run from a systemd timer: appends the SoC temperature to
<log_dir>/pi-temp/temps.csv as `timestamp,c,f` (header written once).
"""

import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from announcements_frame.services.common import paths
from announcements_frame.services.common.config import load_config
from announcements_frame.services.common.logging_config import setup_service_logging

logger = setup_service_logging('announcements-temp-log')

CSV_HEADER = 'timestamp,c,f'


def read_temperature(thermal_path: Path = paths.THERMAL_ZONE_FILE) -> Optional[Tuple[float, float]]:
    """
    Read the thermal zone.

    Returns:
        (celsius, fahrenheit), or None if the node is missing or unreadable.
    """
    try:
        millidegrees = int(Path(thermal_path).read_text().strip())
    except (OSError, ValueError) as e:
        logger.error(f"Could not read temperature from {thermal_path}: {e}")
        return None

    celsius = millidegrees / 1000
    return celsius, celsius * 9 / 5 + 32


def append_reading(log_file: Path, moment: datetime, celsius: float, fahrenheit: float) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    write_header = not log_file.exists() or log_file.stat().st_size == 0
    with open(log_file, 'a', encoding='utf-8') as f:
        if write_header:
            f.write(f"{CSV_HEADER}\n")
        f.write(f"{moment.isoformat(timespec='seconds')},{celsius:.1f},{fahrenheit:.1f}\n")


def main():
    config = load_config()
    reading = read_temperature()
    if reading is None:
        sys.exit(1)

    log_file = config.log_dir / paths.TEMP_LOG_DIR_NAME / paths.TEMP_LOG_FILE_NAME
    celsius, fahrenheit = reading
    append_reading(log_file, datetime.now().astimezone(), celsius, fahrenheit)
    logger.info(f"{celsius:.1f}C / {fahrenheit:.1f}F -> {log_file}")


if __name__ == '__main__':
    main()
