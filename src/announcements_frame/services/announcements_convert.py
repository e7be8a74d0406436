#!/usr/bin/env python3
"""
Announcements Convert - Publish Pipeline

Turns whatever users dropped into the inbox share into display-ready slides
and swaps them into the live directory the slideshow shows.

=== What A Run Does ===

1. Snapshot: copy every non-marker file in the inbox into tmp/inbox_snapshot
   (an empty snapshot is a normal "nothing to do" run)
2. Classify by extension: documents (ppt_extensions), images
   (image_extensions); anything else is skipped and reported
3. Documents: LibreOffice -> PDF -> one PNG per page (ImageMagick), each page
   groomed to output_width x output_height on background_color
4. Images: groomed the same way
5. max_slides (if > 0) caps the total; pages past the cap are discarded
6. Publish: delete every file in live_dir, then move the staged slides in
   (a batch of only unsupported files therefore leaves live_dir empty)
7. Clean up: delete the converted originals from the inbox, restore the
   inbox README, write _READY.txt, restart the slideshow

Everything up to step 6 happens in a private tmp/staging.XXXXXX directory,
so a failed run never touches live_dir. Any failure is caught at the run
level and reported through _READY.txt; the inbox files stay put so the next
quiet period retries them. Once step 6 has changed live_dir the run counts as
published: cleanup problems are only logged and the slideshow is always asked
to restart.

progress (if given) is called before each document and image; the watcher
uses it to keep the systemd watchdog fed during long runs. A single
LibreOffice call longer than WatchdogSec still gets the service killed.

=== Crash Recovery ===

recover() runs once when the watcher starts. A _PROCESSING.txt that is still
there means the previous run died; it becomes _FAILED_<ts>.txt and the
leftover snapshot/staging directories are deleted.

=== Standalone Use ===

    announcements-convert            # one run, same as the watcher would do

Exit status is 0 for success (including an empty inbox) and 1 for a failed
run; 2 means a run was already in progress.
"""

import logging
import re
import shutil
import sys
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Set

from PIL import UnidentifiedImageError

from announcements_frame.exceptions.conversion_failed_exception import ConversionFailedException
from announcements_frame.services.common import paths
from announcements_frame.services.common.config import AnnouncementsConfig, load_config
from announcements_frame.services.common.conversion import ExternalConverter
from announcements_frame.services.common.logging_config import (
    attach_file_handler,
    detach_file_handler,
    setup_service_logging,
)
from announcements_frame.services.common.markers import (
    EMPTY_DROP_FOLDER_TEXT,
    ERROR_PREFIX,
    FileMarkerStore,
    RunState,
    format_timestamp,
)
from announcements_frame.services.common.system import restart_service
from announcements_frame.utils.media_utils import groom_image

logger = setup_service_logging('announcements-convert')

SLIDE_SUFFIX = '.png'


class ContentKind(Enum):
    DOCUMENT = 'document'
    IMAGE = 'image'
    UNSUPPORTED = 'unsupported'


@dataclass
class SnapshotEntry:
    """One inbox file copied into the working snapshot."""
    name: str
    path: Path
    mtime_ns: int
    kind: ContentKind = ContentKind.UNSUPPORTED


@dataclass
class PublishResult:
    slide_count: int = 0
    error: Optional[str] = None
    ready_text: str = ''
    skipped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


class SlideBudget:
    """Counts slides against max_slides (0 = unlimited)."""

    def __init__(self, max_slides: int):
        self.max_slides = max_slides
        self.count = 0

    @property
    def full(self) -> bool:
        return self.max_slides > 0 and self.count >= self.max_slides

    def take(self) -> None:
        self.count += 1


def sanitize_name(name: str) -> str:
    """Lowercase, non-alphanumerics to '_', runs of '_' collapsed, edges trimmed."""
    safe = re.sub(r'[^a-z0-9]', '_', name.lower())
    safe = re.sub(r'_+', '_', safe).strip('_')
    return safe or 'slide'


def unique_stem(stem: str, used: Set[str]) -> str:
    """Return stem, or stem_01, stem_02, ... if already used. Records the result."""
    candidate = stem
    suffix = 1
    while candidate in used:
        candidate = f"{stem}_{suffix:02d}"
        suffix += 1
    used.add(candidate)
    return candidate


class PublishPipeline:
    """
    Snapshot -> convert -> publish, for one quiesced inbox.

    Precondition for run(): the caller has already marked the run as started
    (markers.begin_run()). run() always finishes the run on the marker store,
    successfully or with an error, before returning.
    """

    def __init__(
        self,
        config: AnnouncementsConfig,
        markers: Optional[FileMarkerStore] = None,
        converter: Optional[ExternalConverter] = None,
        restart_slideshow: Optional[Callable[[], bool]] = None,
        clock: Callable[[], datetime] = datetime.now,
        progress: Optional[Callable[[], None]] = None,
    ):
        self.config = config
        self.markers = markers or FileMarkerStore(config.inbox_dir)
        self.converter = converter or ExternalConverter(
            soffice_command=config.soffice_command,
            imagemagick_command=config.imagemagick_command,
            density=config.pdf_density,
        )
        self.restart_slideshow = restart_slideshow or (
            lambda: restart_service(config.slideshow_service, use_sudo=config.restart_use_sudo)
        )
        self._clock = clock
        self._progress = progress or (lambda: None)

    @property
    def snapshot_dir(self) -> Path:
        return self.config.temp_dir / paths.SNAPSHOT_DIR_NAME

    def ensure_directories(self) -> None:
        for directory in (self.config.inbox_dir, self.config.live_dir,
                          self.config.log_dir, self.config.temp_dir):
            directory.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Crash recovery
    # ------------------------------------------------------------------

    def recover(self) -> None:
        """Clear state left behind by a run that was interrupted mid-way."""
        self.markers.recover_stale(self._clock())
        self.purge_scratch()

    def purge_scratch(self) -> None:
        shutil.rmtree(self.snapshot_dir, ignore_errors=True)
        if not self.config.temp_dir.is_dir():
            return
        for staging in self.config.temp_dir.glob(f"{paths.STAGING_DIR_PREFIX}*"):
            logger.info(f"Removing leftover staging directory {staging}")
            shutil.rmtree(staging, ignore_errors=True)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self) -> PublishResult:
        started = self._clock()
        run_log = self.config.log_dir / f"convert_{format_timestamp(started)}.log"
        handler = attach_file_handler(logging.getLogger(), run_log)
        staging: Optional[Path] = None
        live_changed = False

        try:
            self._log_run_header(started)
            self.ensure_directories()

            entries = self._take_snapshot()
            if not entries:
                logger.info("No files in snapshot. Nothing to do.")
                self.markers.finish_run(EMPTY_DROP_FOLDER_TEXT)
                return PublishResult(slide_count=0, ready_text=EMPTY_DROP_FOLDER_TEXT)

            documents, images, skipped = self._classify(entries)

            staging = Path(tempfile.mkdtemp(prefix=paths.STAGING_DIR_PREFIX, dir=str(self.config.temp_dir)))
            logger.info(f"Using staging dir: {staging}")

            budget = SlideBudget(self.config.max_slides)
            self._convert_documents(documents, staging, budget)
            self._convert_images(images, staging, budget)
            logger.info(f"Total slides prepared: {budget.count}")

            live_changed = self._publish(staging)

            # The new deck is live from here on; nothing below may fail the run
            cleaned = self._tidy_inbox(entries)
            ready_text = self._success_text(budget.count, skipped, cleaned)
            try:
                self.markers.finish_run(ready_text)
                logger.info("_READY.txt written")
            except OSError as e:
                logger.error(f"Could not write _READY.txt: {e}")

            if live_changed:
                self._request_restart()

            logger.info("Conversion run complete.")
            return PublishResult(slide_count=budget.count, ready_text=ready_text, skipped=skipped)

        except Exception as e:
            logger.error(f"Conversion run failed: {e}", exc_info=True)
            ready_text = (
                f"{ERROR_PREFIX} during processing at {self._clock().ctime()}: {e}\n"
                "The files were left in the drop folder. Fix or remove them to retry."
            )
            try:
                self.markers.finish_run(ready_text)
            except OSError as marker_error:
                logger.error(f"Could not write _READY.txt: {marker_error}")
            if live_changed:
                self._request_restart()
            return PublishResult(slide_count=0, error=str(e), ready_text=ready_text)

        finally:
            if staging is not None:
                shutil.rmtree(staging, ignore_errors=True)
            shutil.rmtree(self.snapshot_dir, ignore_errors=True)
            detach_file_handler(logging.getLogger(), handler)

    def _log_run_header(self, started: datetime) -> None:
        config = self.config
        logger.info("=" * 44)
        logger.info(f"Announcements conversion run: {started.ctime()}")
        logger.info(f"INBOX: {config.inbox_dir}  OUT: {config.live_dir}  TMP: {config.temp_dir}")
        logger.info(
            f"Resolution: {config.output_width}x{config.output_height}, "
            f"background={config.background_color}, center_images={config.center_images}"
        )
        logger.info(
            f"PPT_EXT: {' '.join(sorted(config.ppt_extensions))}  "
            f"IMG_EXT: {' '.join(sorted(config.image_extensions))}  MAX_SLIDES: {config.max_slides}"
        )

    def _take_snapshot(self) -> List[SnapshotEntry]:
        snapshot_dir = self.snapshot_dir
        shutil.rmtree(snapshot_dir, ignore_errors=True)
        snapshot_dir.mkdir(parents=True)

        logger.info("Creating snapshot of inbox...")
        entries = []
        for source in sorted(self.config.inbox_dir.iterdir()):
            if self.markers.is_marker(source.name):
                continue
            if not source.is_file():
                logger.info(f"Skipping non-file entry: {source.name}")
                continue
            try:
                mtime_ns = source.stat().st_mtime_ns
                target = snapshot_dir / source.name
                shutil.copy2(source, target)
            except FileNotFoundError:
                logger.info(f"{source.name} disappeared before it could be copied")
                continue
            entries.append(SnapshotEntry(name=source.name, path=target, mtime_ns=mtime_ns))

        logger.info(f"Snapshot created ({len(entries)} files).")
        return entries

    def _classify(self, entries: List[SnapshotEntry]):
        documents, images, skipped = [], [], []
        for entry in entries:
            extension = Path(entry.name).suffix.lower().lstrip('.')
            if extension and extension in self.config.ppt_extensions:
                entry.kind = ContentKind.DOCUMENT
                documents.append(entry)
            elif extension and extension in self.config.image_extensions:
                entry.kind = ContentKind.IMAGE
                images.append(entry)
            else:
                logger.info(f"Skipping unsupported file type: {entry.name}")
                skipped.append(entry.name)
        return documents, images, skipped

    def _groom(self, source: Path, target: Path, label: str) -> None:
        config = self.config
        try:
            groom_image(
                source, target,
                config.output_width, config.output_height,
                background=config.background_color,
                center=config.center_images,
            )
        except (UnidentifiedImageError, OSError) as e:
            raise ConversionFailedException(label, str(e))

    def _convert_documents(self, documents: List[SnapshotEntry], staging: Path, budget: SlideBudget) -> None:
        if not documents:
            logger.info("No documents found in snapshot.")
            return

        logger.info("Converting documents -> slides...")
        used: Set[str] = set()
        for entry in documents:
            self._progress()
            if budget.full:
                logger.info(f"MAX_SLIDES ({budget.max_slides}) reached, skipping {entry.name}")
                continue

            source = Path(entry.name)
            stem = unique_stem(sanitize_name(source.stem), used)
            logger.info(f"  -> {entry.name} (as {stem})")

            work_copy = staging / f"{stem}{source.suffix.lower()}"
            shutil.copy2(entry.path, work_copy)
            pdf_path = self.converter.document_to_pdf(work_copy, staging)
            if work_copy != pdf_path:
                work_copy.unlink(missing_ok=True)

            pages = self.converter.pdf_to_pages(pdf_path, staging, stem)
            slide_index = 1
            for page in pages:
                if budget.full:
                    logger.info(f"MAX_SLIDES ({budget.max_slides}) reached, discarding {page.name}")
                    page.unlink(missing_ok=True)
                    continue
                slide = staging / f"{stem}-slide-{slide_index:02d}{SLIDE_SUFFIX}"
                self._groom(page, slide, f"{entry.name} ({page.name})")
                page.unlink(missing_ok=True)
                slide_index += 1
                budget.take()

            self._retain_pdf(pdf_path)

    def _retain_pdf(self, pdf_path: Path) -> None:
        if not self.config.keep_pdfs:
            pdf_path.unlink(missing_ok=True)
            return
        try:
            shutil.move(str(pdf_path), str(self.config.log_dir / pdf_path.name))
        except OSError as e:
            logger.warning(f"Could not keep {pdf_path.name} in {self.config.log_dir}: {e}")
            pdf_path.unlink(missing_ok=True)

    def _convert_images(self, images: List[SnapshotEntry], staging: Path, budget: SlideBudget) -> None:
        if not images:
            logger.info("No standalone images found in snapshot.")
            return

        logger.info("Processing standalone images...")
        used: Set[str] = set()
        for entry in images:
            self._progress()
            if budget.full:
                logger.info(f"MAX_SLIDES ({budget.max_slides}) reached, skipping remaining images.")
                break
            stem = unique_stem(sanitize_name(Path(entry.name).stem), used)
            logger.info(f"  -> {entry.name} (as {stem}{SLIDE_SUFFIX})")
            self._groom(entry.path, staging / f"{stem}{SLIDE_SUFFIX}", entry.name)
            budget.take()

    def _publish(self, staging: Path) -> bool:
        """
        Replace the published deck with the staged slides.

        Every regular file in live_dir is removed, so a run with no slides
        leaves it empty. The live directory is briefly empty between the
        delete and the moves; the viewer may show a blank frame in that window.

        Returns:
            True if live_dir changed.
        """
        live_dir = self.config.live_dir
        live_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Staging build complete. Updating live output...")

        changed = False
        for existing in live_dir.iterdir():
            if existing.is_file():
                existing.unlink()
                changed = True

        for slide in sorted(staging.glob(f"*{SLIDE_SUFFIX}")):
            shutil.move(str(slide), str(live_dir / slide.name))
            changed = True

        logger.info("Live output updated.")
        return changed

    def _request_restart(self) -> None:
        logger.info("Restarting slideshow service to pick up new deck...")
        if not self.restart_slideshow():
            logger.warning("Failed to restart slideshow service; it will pick up the deck on its next start")

    def _tidy_inbox(self, entries: List[SnapshotEntry]) -> bool:
        """
        Clean the inbox and restore its README after a publish.

        Returns:
            False if some originals could not be removed.
        """
        try:
            cleaned = self._clean_inbox(entries)
        except OSError as e:
            logger.warning(f"Inbox cleanup failed: {e}")
            cleaned = False
        self._restore_readme()
        return cleaned

    def _clean_inbox(self, entries: List[SnapshotEntry]) -> bool:
        """
        Delete the originals that went into this run.

        A file rewritten (or added) after the snapshot was taken is left alone
        so the next quiet period picks it up.

        Returns:
            False if any original could not be deleted.
        """
        logger.info("Cleaning inbox originals...")
        cleaned = True
        for entry in entries:
            original = self.config.inbox_dir / entry.name
            try:
                if original.stat().st_mtime_ns != entry.mtime_ns:
                    logger.info(f"{entry.name} changed during the run, keeping it for the next run")
                    continue
                original.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Could not remove {entry.name} from the inbox: {e}")
                cleaned = False
        return cleaned

    def _restore_readme(self) -> None:
        template = self.config.inbox_readme_template
        if not template.is_file():
            return
        try:
            shutil.copyfile(template, self.config.inbox_dir / paths.INBOX_README_NAME)
        except OSError as e:
            logger.warning(f"Could not restore inbox README: {e}")

    def _success_text(self, slide_count: int, skipped: List[str], cleaned: bool = True) -> str:
        when = self._clock().ctime()
        if slide_count > 0:
            lines = [
                f"Drop folder processed successfully at {when}.",
                f"{slide_count} slide(s) published.",
            ]
        else:
            lines = [
                f"No supported files found at {when}; the display now has no slides.",
            ]
        if skipped:
            lines.append(f"Skipped unsupported files: {', '.join(skipped)}")
        if cleaned:
            lines.append(EMPTY_DROP_FOLDER_TEXT)
        else:
            lines.append("Some files could not be removed from the drop folder; remove them by hand.")
        return '\n'.join(lines)


def convert_once(config: AnnouncementsConfig) -> int:
    """
    Run the pipeline once outside the watcher.

    Returns:
        Process exit status (0 ok, 1 failed run, 2 a run is already active).
    """
    markers = FileMarkerStore(config.inbox_dir)
    if markers.run_state() is RunState.PROCESSING:
        logger.error("A conversion run is already in progress (_PROCESSING.txt present)")
        return 2

    pipeline = PublishPipeline(config, markers)
    pipeline.ensure_directories()
    markers.begin_run()
    result = pipeline.run()
    if result.ok:
        logger.info(f"Run finished: {result.slide_count} slide(s)")
    else:
        logger.error(f"Run failed: {result.error}")
    return result.exit_code


def main():
    sys.exit(convert_once(load_config()))


if __name__ == '__main__':
    main()
