"""
Shared fixtures and fakes for the announcements frame tests.

Nothing here needs LibreOffice, ImageMagick, systemd or sysfs: conversion is
done by FakeConverter (Pillow-rendered pages), restarts are recorded, and the
clock is driven by hand.
"""

from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest
from PIL import Image

from announcements_frame.exceptions.conversion_failed_exception import ConversionFailedException
from announcements_frame.services.common.config import AnnouncementsConfig
from announcements_frame.services.common.markers import (
    ERROR_PREFIX,
    RunState,
    is_marker_name,
)

# Monday
FIXED_NOW = datetime(2024, 6, 3, 10, 30, 0)


class ManualClock:
    """Monotonic seconds that only move when advance() is called."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingRestart:
    """Stands in for restart_service(); counts calls."""

    def __init__(self, result: bool = True):
        self.calls = 0
        self.result = result

    def __call__(self) -> bool:
        self.calls += 1
        return self.result


class InMemoryStateFile:
    """StateFile without a filesystem. `writes` counts actual writes."""

    def __init__(self, value: Optional[str] = None):
        self.value = value
        self.writes = 0

    def read(self) -> Optional[str]:
        return self.value

    def write(self, value: str) -> None:
        self.value = value
        self.writes += 1

    def write_if_different(self, value: str) -> bool:
        if self.value == value:
            return False
        self.write(value)
        return True


class RecordingDisplayPower:
    def __init__(self):
        self.calls: List[str] = []

    def set_power(self, power: str) -> List[Path]:
        self.calls.append(power)
        return []


class InMemoryMarkerStore:
    """Run state kept in memory; `events` records begin/finish order."""

    def __init__(self, processing: bool = False, ready: Optional[str] = None):
        self.processing = processing
        self.ready: Optional[str] = ready
        self.failed: List[str] = []
        self.status: Optional[str] = None
        self.events: List[str] = []

    def is_marker(self, name: str) -> bool:
        return is_marker_name(name)

    def run_state(self) -> RunState:
        if self.processing:
            return RunState.PROCESSING
        if self.ready is not None and self.ready.startswith(ERROR_PREFIX):
            return RunState.FAILED
        return RunState.IDLE

    def ready_text(self) -> Optional[str]:
        return self.ready

    def begin_run(self, now: Optional[datetime] = None) -> None:
        assert not self.processing, "begin_run while a run is active"
        self.ready = None
        self.processing = True
        self.events.append('begin')

    def finish_run(self, result_text: str) -> None:
        self.processing = False
        self.ready = result_text
        self.events.append('finish')

    def recover_stale(self, now: Optional[datetime] = None):
        if not self.processing:
            return None
        self.processing = False
        self.failed.append((now or FIXED_NOW).strftime('%Y%m%d-%H%M%S'))
        return None

    def write_status(self, text: str, now: Optional[datetime] = None):
        self.status = text

    def clear_status(self) -> None:
        self.status = None


class FakeConverter:
    """
    Replaces LibreOffice + ImageMagick.

    document_to_pdf writes a placeholder PDF; pdf_to_pages renders `pages`
    solid-colour PNGs. Stems listed in `fail_on` raise ConversionFailedException.
    """

    def __init__(self, pages: Optional[Dict[str, int]] = None, fail_on: Optional[Set[str]] = None,
                 default_pages: int = 1, page_size=(200, 100)):
        self.pages = pages or {}
        self.fail_on = fail_on or set()
        self.default_pages = default_pages
        self.page_size = page_size
        self.converted: List[str] = []

    def document_to_pdf(self, source: Path, outdir: Path) -> Path:
        if source.stem in self.fail_on:
            raise ConversionFailedException(source.name, "soffice exited with status 1.")
        pdf_path = outdir / f"{source.stem}.pdf"
        if source.suffix.lower() != '.pdf':
            pdf_path.write_bytes(b'%PDF-1.4 fake\n')
        self.converted.append(source.name)
        return pdf_path

    def pdf_to_pages(self, pdf_path: Path, outdir: Path, prefix: str) -> List[Path]:
        count = self.pages.get(prefix, self.default_pages)
        pages = []
        for index in range(count):
            page = outdir / f"{prefix}_page_{index:02d}.png"
            Image.new('RGB', self.page_size, (index * 20 % 256, 100, 150)).save(page)
            pages.append(page)
        return pages


def write_image(path: Path, size=(320, 240), color='red', mode='RGB') -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new(mode, size, color).save(path)
    return path


@pytest.fixture
def frame_config(tmp_path) -> AnnouncementsConfig:
    """A config rooted in tmp_path with small output slides."""
    base = tmp_path / 'srv'
    config = AnnouncementsConfig(
        config_path=base / 'config' / 'announcements.conf',
        base_dir=base,
        inbox_dir=base / 'inbox',
        live_dir=base / 'live',
        off_dir=base / 'off_schedule',
        log_dir=base / 'logs',
        temp_dir=base / 'tmp',
        inbox_readme_template=base / 'config' / 'inbox_readme.txt',
        output_width=64,
        output_height=36,
        ppt_extensions=frozenset({'pptx', 'pdf'}),
        mode_file=tmp_path / 'state' / 'mode',
        display_state_file=tmp_path / 'state' / 'display',
        backlight_path=tmp_path / 'sys' / 'bl_power',
        hdmi_status_path=tmp_path / 'sys' / 'hdmi_status',
    )
    for directory in (config.inbox_dir, config.live_dir, config.log_dir, config.temp_dir):
        directory.mkdir(parents=True)
    return config


@pytest.fixture
def make_config(frame_config):
    """Variant of frame_config with some fields changed."""
    def _make(**changes) -> AnnouncementsConfig:
        return replace(frame_config, **changes)
    return _make
