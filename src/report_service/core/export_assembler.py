"""
Export Assembler

Bundles a report into a downloadable zip: a PDF summary of the report and its
attachments (with previews for pictures and sketches) plus a media/ folder
holding the original attachment binaries.
"""

import logging
import re
import zipfile
from datetime import datetime
from io import BytesIO
from pathlib import PurePosixPath
from typing import Optional, Set
from urllib.parse import urlparse

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas
from sqlalchemy.ext.asyncio import AsyncSession

from report_service.config.settings import settings
from report_service.core.attachment_manager import AttachmentManager
from report_service.core.exceptions import DownloadFailed
from report_service.core.ownership import OwnershipGuard
from report_service.core.report_manager import ReportManager
from report_service.infrastructure.storage import MediaFetcher, MediaFetchError
from report_service.models.report import Attachment, ExportBundle, MediaType, Report

logger = logging.getLogger(__name__)

# Layout in millimetres, measured from the top of an A4 page
PAGE_HEIGHT_MM = 297
PAGE_BREAK_THRESHOLD_MM = 250
PAGE_BOTTOM_MM = 285
TOP_MARGIN_MM = 20
LEFT_MARGIN_MM = 14
DESCRIPTION_WIDTH_MM = 180
ATTACHMENT_TEXT_WIDTH_MM = 90

PREVIEW_X_MM = 120
PREVIEW_WIDTH_MM = 75
PREVIEW_HEIGHT_MM = 45
PREVIEW_DPI = 150

FONT = "Helvetica"

DEFAULT_EXTENSIONS = {
    MediaType.PICTURE: ".jpg",
    MediaType.VIDEO: ".mp4",
    MediaType.AUDIO: ".mp3",
    MediaType.SKETCH: ".png",
    MediaType.DOCUMENT: ".pdf",
}

_UNSAFE_CHARS_RE = re.compile(r"[^a-z0-9]", re.IGNORECASE)
_EXTENSION_RE = re.compile(r"^\.[a-z0-9]{1,5}$", re.IGNORECASE)


def sanitize_filename(name: str) -> str:
    """Replace everything but ASCII letters and digits with '_' and lower-case"""
    return _UNSAFE_CHARS_RE.sub("_", name).lower()


def infer_extension(media_type: MediaType, url: str) -> str:
    """Extension from the URL path when it looks plausible, else a per-type default"""
    suffix = PurePosixPath(urlparse(url).path).suffix
    if _EXTENSION_RE.match(suffix):
        return suffix.lower()
    return DEFAULT_EXTENSIONS.get(media_type, ".bin")


def _format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")


class _PdfLayout:
    """Top-down text/image layout on a reportlab canvas with explicit page breaks"""

    def __init__(self, title: str):
        self.buffer = BytesIO()
        self.canvas = canvas.Canvas(self.buffer, pagesize=A4)
        self.canvas.setTitle(title)
        self.y = TOP_MARGIN_MM

    def new_page(self) -> None:
        self.canvas.showPage()
        self.y = TOP_MARGIN_MM

    def text(self, value: str, size: float, y: Optional[float] = None, x: float = LEFT_MARGIN_MM) -> None:
        self.canvas.setFont(FONT, size)
        self.canvas.drawString(x * mm, (PAGE_HEIGHT_MM - (self.y if y is None else y)) * mm, value)

    @property
    def page(self) -> int:
        return self.canvas.getPageNumber()

    def ensure_space(self, height_mm: float) -> None:
        """Start a new page unless a block of height_mm fits below the current offset"""
        if self.y > TOP_MARGIN_MM and self.y + height_mm > PAGE_BOTTOM_MM:
            self.new_page()

    def line_count(self, value: str, size: float, width_mm: float) -> int:
        return len(simpleSplit(value, FONT, size, width_mm * mm))

    def wrapped(self, value: str, size: float, width_mm: float, line_height_mm: float) -> int:
        """Draw wrapped text starting at the current offset; returns lines drawn"""
        lines = simpleSplit(value, FONT, size, width_mm * mm)
        for line in lines:
            if self.y > PAGE_BOTTOM_MM:
                self.new_page()
            self.text(line, size)
            self.y += line_height_mm
        return len(lines)

    def image(self, image: Image.Image, x_mm: float, top_mm: float, width_mm: float, height_mm: float) -> None:
        bottom = PAGE_HEIGHT_MM - top_mm - height_mm
        self.canvas.drawImage(ImageReader(image), x_mm * mm, bottom * mm, width_mm * mm, height_mm * mm)

    def string_width_mm(self, value: str, size: float) -> float:
        return self.canvas.stringWidth(value, FONT, size) / mm

    def render(self) -> bytes:
        self.canvas.save()
        return self.buffer.getvalue()


def _scaled_preview(data: bytes):
    """Decode image bytes and scale them into the preview box

    Returns:
        (image, width_mm, height_mm)

    Raises:
        OSError: If the bytes are not a decodable image
    """
    with Image.open(BytesIO(data)) as source:
        image = source.convert("RGB")

    ratio = min(PREVIEW_WIDTH_MM / image.width, PREVIEW_HEIGHT_MM / image.height)
    width_mm = image.width * ratio
    height_mm = image.height * ratio

    max_px = (
        max(1, int(width_mm / 25.4 * PREVIEW_DPI)),
        max(1, int(height_mm / 25.4 * PREVIEW_DPI)),
    )
    image.thumbnail(max_px)
    return image, width_mm, height_mm


class ExportAssembler:
    """Builds the report export archive"""

    def __init__(
        self,
        report_manager: Optional[ReportManager] = None,
        attachment_manager: Optional[AttachmentManager] = None,
        fetcher: Optional[MediaFetcher] = None,
        guard: Optional[OwnershipGuard] = None
    ):
        self.guard = guard or OwnershipGuard()
        self.report_manager = report_manager or ReportManager(guard=self.guard)
        self.attachment_manager = attachment_manager or AttachmentManager(guard=self.guard)
        self.fetcher = fetcher or MediaFetcher(timeout=settings.media_fetch_timeout_seconds)

    async def _fetch(self, attachment: Attachment) -> bytes:
        try:
            return await self.fetcher.fetch(attachment.media_url)
        except MediaFetchError as e:
            raise DownloadFailed(
                f"Could not download media of attachment {attachment.attachment_id}"
            ) from e

    def _render_header(self, layout: _PdfLayout, report: Report) -> None:
        layout.text(f"Report: {report.title or 'Untitled'}", 20, y=20)

        layout.text(f"Report ID: {report.report_id}", 12, y=30)
        layout.text(f"Created: {_format_timestamp(report.created_at)}", 12, y=36)
        layout.text(f"Updated: {_format_timestamp(report.updated_at)}", 12, y=42)
        if report.tags:
            layout.text(f"Tags: {', '.join(report.tags)}", 12, y=48)

        layout.text("Description:", 12, y=56)
        layout.y = 62
        layout.wrapped(report.description or "No description", 12, DESCRIPTION_WIDTH_MM, 6)

    async def export_report(
        self,
        report_id: str,
        caller_id: Optional[str],
        db: AsyncSession
    ) -> ExportBundle:
        """
        Assemble the export archive of a report

        Args:
            report_id: Report to export
            caller_id: Local user id of the caller
            db: Database session

        Returns:
            ExportBundle with the zip bytes and its download filename

        Raises:
            Unauthorized / NotFound: Before any media is fetched

        Note:
            A media download failure only affects its own attachment: the
            document records a placeholder line and the export carries on.
        """
        await self.guard.require_report(report_id, caller_id, db)

        report = await self.report_manager.get_report(report_id, caller_id, db)
        attachments = await self.attachment_manager.get_attachments(report_id, caller_id, db)

        sanitized_title = sanitize_filename(report.title or "report")
        layout = _PdfLayout(title=report.title or "Report")
        archive_buffer = BytesIO()
        bundle = ExportBundle(filename=f"{sanitized_title}-{report_id}.zip", content=b"")
        used_names: Set[str] = set()

        self._render_header(layout, report)

        with zipfile.ZipFile(archive_buffer, "w", compression=zipfile.ZIP_STORED) as archive:
            if attachments:
                layout.y += 10
                layout.text("Attachments", 16)
                layout.y += 10

            for index, attachment in enumerate(attachments, start=1):
                await self._render_attachment(layout, archive, bundle, used_names, index, attachment)

            archive.writestr(f"{sanitized_title}-report.pdf", layout.render())

        bundle.content = archive_buffer.getvalue()

        logger.info(
            f"Exported report {report_id}: {bundle.media_count} media file(s), "
            f"{len(bundle.failed_media)} failed download(s)"
        )
        return bundle

    def _media_entry_name(self, attachment: Attachment, used_names: Set[str]) -> str:
        base = f"{sanitize_filename(attachment.title or 'untitled')}_{attachment.media_type.value}"
        extension = infer_extension(attachment.media_type, attachment.media_url)

        name = f"{base}{extension}"
        counter = 2
        while name in used_names:
            name = f"{base}_{counter}{extension}"
            counter += 1
        used_names.add(name)
        return name

    async def _render_attachment(
        self,
        layout: _PdfLayout,
        archive: zipfile.ZipFile,
        bundle: ExportBundle,
        used_names: Set[str],
        index: int,
        attachment: Attachment
    ) -> None:
        if layout.y > PAGE_BREAK_THRESHOLD_MM:
            layout.new_page()

        title = attachment.title or "Untitled"
        description = f"Description: {attachment.description}" if attachment.description else None

        # Keep heading, text and preview of one attachment on the same page
        block_height = 21
        if description:
            block_height += layout.line_count(description, 10, ATTACHMENT_TEXT_WIDTH_MM) * 5
        if attachment.has_media and attachment.media_type.is_image:
            block_height = max(block_height, PREVIEW_HEIGHT_MM + 5)
        layout.ensure_space(block_height)

        block_top = layout.y
        block_page = layout.page

        layout.text(f"Attachment {index}: {title}", 14)
        layout.y += 6
        layout.text(f"ID: {attachment.attachment_id}", 10)
        layout.y += 5
        layout.text(f"Type: {attachment.media_type.value}", 10)
        layout.y += 5

        if description:
            layout.wrapped(description, 10, ATTACHMENT_TEXT_WIDTH_MM, 5)
        if layout.page != block_page:
            # Description ran past a full page; the preview follows the text
            block_top = TOP_MARGIN_MM

        if not attachment.has_media:
            layout.text("Media file: None", 10)
            layout.y += 15
            return

        try:
            data = await self._fetch(attachment)
        except DownloadFailed as e:
            logger.warning(f"{e}: {e.__cause__}")
            bundle.failed_media.append(attachment.attachment_id)
            layout.text("Media file: Could not download (error)", 10)
            layout.y += 15
            return

        entry_name = self._media_entry_name(attachment, used_names)
        archive.writestr(f"media/{entry_name}", data)
        bundle.media_count += 1

        layout.text(f"Media file: {entry_name}", 10)
        layout.y += 5
        text_height = layout.y - block_top

        if attachment.media_type.is_image:
            try:
                preview, width_mm, height_mm = _scaled_preview(data)
            except (OSError, ValueError, Image.DecompressionBombError) as e:
                logger.warning(f"Could not embed preview of attachment {attachment.attachment_id}: {e}")
            else:
                layout.image(preview, PREVIEW_X_MM, block_top, width_mm, height_mm)

                caption_width = layout.string_width_mm(title, 8)
                caption_x = PREVIEW_X_MM + (PREVIEW_WIDTH_MM - caption_width) / 2
                layout.text(title, 8, y=block_top + PREVIEW_HEIGHT_MM + 5, x=caption_x)

                if PREVIEW_HEIGHT_MM + 5 > text_height:
                    layout.y += PREVIEW_HEIGHT_MM + 5 - text_height

        layout.y += 10
