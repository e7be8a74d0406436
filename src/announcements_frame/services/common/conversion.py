"""
Announcements Frame - External Conversion Tools

Documents go through two external programs:

    presentation --(LibreOffice, headless)--> PDF --(ImageMagick)--> one PNG per page

Both calls are synchronous and have no timeout: a hung converter blocks the
run (and the watcher) until it is killed. A non-zero exit status or a
missing output raises ConversionFailedException, which fails the whole run.
"""

import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import List

from announcements_frame.exceptions.conversion_failed_exception import ConversionFailedException

logger = logging.getLogger(__name__)

PAGE_SUFFIX = '_page_'
_PAGE_INDEX_RE = re.compile(r'_page_(\d+)\.png$')


def page_index(page_path: Path) -> int:
    match = _PAGE_INDEX_RE.search(page_path.name)
    return int(match.group(1)) if match else 0


class ExternalConverter:
    """Runs LibreOffice and ImageMagick as opaque batch commands."""

    def __init__(self, soffice_command: str = 'soffice', imagemagick_command: str = 'convert', density: int = 150):
        self.soffice_command = soffice_command
        self.imagemagick_command = imagemagick_command
        self.density = density

    def _run(self, cmd: List[str], source: Path) -> None:
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError:
            raise ConversionFailedException(source.name, f"{cmd[0]} is not installed.")

        if result.returncode != 0:
            stderr = (result.stderr or '').strip()
            logger.error(f"{cmd[0]} exited with {result.returncode}: {stderr}")
            raise ConversionFailedException(
                source.name, f"{Path(cmd[0]).name} exited with status {result.returncode}.", stderr
            )

    def document_to_pdf(self, source: Path, outdir: Path) -> Path:
        """
        Convert an office document to PDF.

        Returns:
            Path of the PDF written to outdir (named after the source stem).
        """
        if source.suffix.lower() == '.pdf':
            pdf_path = outdir / source.name
            if source.resolve() != pdf_path.resolve():
                shutil.copy2(source, pdf_path)
            return pdf_path

        self._run(
            [self.soffice_command, '--headless', '--convert-to', 'pdf', str(source), '--outdir', str(outdir)],
            source,
        )

        pdf_path = outdir / f"{source.stem}.pdf"
        if not pdf_path.exists():
            raise ConversionFailedException(source.name, "No PDF was produced.")
        return pdf_path

    def pdf_to_pages(self, pdf_path: Path, outdir: Path, prefix: str) -> List[Path]:
        """
        Rasterize every page of a PDF to <prefix>_page_NN.png in outdir.

        Returns:
            Page images in page order.
        """
        pattern = outdir / f"{prefix}{PAGE_SUFFIX}%02d.png"
        self._run(
            [self.imagemagick_command, '-density', str(self.density), str(pdf_path), str(pattern)],
            pdf_path,
        )

        # Slides of earlier documents share outdir; only exact <prefix>_page_<n>.png are pages
        page_re = re.compile(rf"^{re.escape(prefix)}{PAGE_SUFFIX}\d+\.png$")
        pages = sorted(
            (p for p in outdir.iterdir() if page_re.match(p.name)),
            key=page_index,
        )
        if not pages:
            raise ConversionFailedException(pdf_path.name, "No pages were rendered.")
        return pages
