"""Unit tests for the report export archive"""

import zipfile
from io import BytesIO

import pytest

from report_service.core.exceptions import NotFound, Unauthorized
from report_service.core.export_assembler import (
    LEFT_MARGIN_MM,
    TOP_MARGIN_MM,
    _PdfLayout,
    infer_extension,
    sanitize_filename,
)
from report_service.models import ExportBundle, MediaFile, MediaType


def _open(bundle):
    return zipfile.ZipFile(BytesIO(bundle.content))


@pytest.mark.unit
class TestFilenameHelpers:

    def test_sanitize_filename(self):
        assert sanitize_filename("Case #1") == "case__1"
        assert sanitize_filename("Untitled Attachment") == "untitled_attachment"
        assert sanitize_filename("Über Straße") == "_ber_stra_e"

    def test_extension_from_url(self):
        assert infer_extension(MediaType.PICTURE, "https://blob.test/picture/1-a.PNG") == ".png"
        assert infer_extension(MediaType.AUDIO, "https://blob.test/audio/1-clip.m4a?sig=abc") == ".m4a"

    def test_extension_falls_back_per_type(self):
        assert infer_extension(MediaType.PICTURE, "https://blob.test/picture/noext") == ".jpg"
        assert infer_extension(MediaType.VIDEO, "https://blob.test/v/file.toolongext") == ".mp4"
        assert infer_extension(MediaType.AUDIO, "https://blob.test/a") == ".mp3"
        assert infer_extension(MediaType.SKETCH, "https://blob.test/s") == ".png"


@pytest.mark.unit
class TestExportReport:

    async def test_export_with_picture(
        self, export_assembler, report_manager, attachment_manager, db_session, owner, report_id, picture
    ):
        """Happy path: one PDF at the root plus the binary under media/"""
        await report_manager.update_report(report_id, owner.user_id, "Case #1", "Pothole", ["road"], db_session)
        await attachment_manager.create_attachment(
            report_id, owner.user_id, picture, MediaType.PICTURE, db_session
        )

        bundle = await export_assembler.export_report(report_id, owner.user_id, db_session)

        assert bundle.filename == f"case__1-{report_id}.zip"
        assert bundle.media_count == 1
        assert bundle.failed_media == []

        with _open(bundle) as archive:
            assert set(archive.namelist()) == {
                "case__1-report.pdf",
                "media/untitled_attachment_picture.png",
            }
            assert archive.read("case__1-report.pdf").startswith(b"%PDF")
            assert archive.read("media/untitled_attachment_picture.png") == picture.content

    async def test_export_empty_report(self, export_assembler, db_session, owner, report_id):
        bundle = await export_assembler.export_report(report_id, owner.user_id, db_session)

        with _open(bundle) as archive:
            assert archive.namelist() == ["untitled_report-report.pdf"]
        assert bundle.media_count == 0

    async def test_failed_download_is_isolated(
        self, export_assembler, attachment_manager, broken_urls, db_session, owner, report_id, picture
    ):
        """A media download failure drops that file and the export carries on"""
        broken = await attachment_manager.create_attachment(
            report_id, owner.user_id, picture, MediaType.PICTURE, db_session, title="Broken"
        )
        await attachment_manager.create_attachment(
            report_id, owner.user_id, picture, MediaType.SKETCH, db_session, title="Fine"
        )
        broken_urls.add(broken.media_url)

        bundle = await export_assembler.export_report(report_id, owner.user_id, db_session)

        assert bundle.failed_media == [broken.attachment_id]
        assert bundle.media_count == 1
        with _open(bundle) as archive:
            assert set(archive.namelist()) == {"untitled_report-report.pdf", "media/fine_sketch.png"}

    async def test_missing_blob_counts_as_failed(
        self, export_assembler, attachment_manager, storage, db_session, owner, report_id, picture
    ):
        attachment = await attachment_manager.create_attachment(
            report_id, owner.user_id, picture, MediaType.PICTURE, db_session
        )
        storage.blobs.clear()

        bundle = await export_assembler.export_report(report_id, owner.user_id, db_session)

        assert bundle.failed_media == [attachment.attachment_id]
        with _open(bundle) as archive:
            assert archive.namelist() == ["untitled_report-report.pdf"]

    async def test_document_without_media(
        self, export_assembler, attachment_manager, db_session, owner, report_id
    ):
        await attachment_manager.create_attachment(
            report_id, owner.user_id, None, MediaType.DOCUMENT, db_session,
            title="Witness notes", description="Two people saw the collision"
        )

        bundle = await export_assembler.export_report(report_id, owner.user_id, db_session)

        assert bundle.media_count == 0
        assert bundle.failed_media == []
        with _open(bundle) as archive:
            assert archive.namelist() == ["untitled_report-report.pdf"]

    async def test_undecodable_picture_still_archived(
        self, export_assembler, attachment_manager, db_session, owner, report_id
    ):
        """Preview rendering is skipped but the binary is still exported"""
        garbage = MediaFile(content=b"not an image", filename="photo.jpg", content_type="image/jpeg")
        await attachment_manager.create_attachment(
            report_id, owner.user_id, garbage, MediaType.PICTURE, db_session
        )

        bundle = await export_assembler.export_report(report_id, owner.user_id, db_session)

        with _open(bundle) as archive:
            assert archive.read("media/untitled_attachment_picture.jpg") == b"not an image"

    async def test_duplicate_entry_names_are_suffixed(
        self, export_assembler, attachment_manager, db_session, owner, report_id, picture
    ):
        for _ in range(2):
            await attachment_manager.create_attachment(
                report_id, owner.user_id, picture, MediaType.PICTURE, db_session
            )

        bundle = await export_assembler.export_report(report_id, owner.user_id, db_session)

        with _open(bundle) as archive:
            media = sorted(n for n in archive.namelist() if n.startswith("media/"))
        assert media == [
            "media/untitled_attachment_picture.png",
            "media/untitled_attachment_picture_2.png",
        ]

    async def test_many_attachments_span_pages(
        self, export_assembler, attachment_manager, db_session, owner, report_id, make_png
    ):
        for index in range(12):
            media = MediaFile(content=make_png(size=(40 + index, 30)), filename=f"p{index}.png")
            await attachment_manager.create_attachment(
                report_id, owner.user_id, media, MediaType.PICTURE, db_session,
                title=f"Photo {index}", description="A fairly long description " * 8
            )

        bundle = await export_assembler.export_report(report_id, owner.user_id, db_session)

        assert bundle.media_count == 12
        with _open(bundle) as archive:
            pdf = archive.read("untitled_report-report.pdf")
        assert pdf.startswith(b"%PDF")
        assert pdf.rstrip().endswith(b"%%EOF")

    async def test_stranger_rejected_before_any_fetch(
        self, export_assembler, attachment_manager, fetcher, db_session, owner, stranger, report_id, picture,
        monkeypatch
    ):
        await attachment_manager.create_attachment(
            report_id, owner.user_id, picture, MediaType.PICTURE, db_session
        )
        fetched = []

        async def spy(url):
            fetched.append(url)
            return b""

        monkeypatch.setattr(fetcher, "fetch", spy)

        with pytest.raises(Unauthorized):
            await export_assembler.export_report(report_id, stranger.user_id, db_session)
        assert fetched == []

    async def test_missing_report(self, export_assembler, db_session, owner):
        with pytest.raises(NotFound):
            await export_assembler.export_report("missing", owner.user_id, db_session)


class RecordingLayout(_PdfLayout):
    """Layout that remembers on which page headings and previews were drawn"""

    def __init__(self):
        super().__init__(title="layout")
        self.heading_pages = []
        self.previews = []

    def text(self, value, size, y=None, x=LEFT_MARGIN_MM):
        if value.startswith("Attachment "):
            self.heading_pages.append(self.page)
        super().text(value, size, y=y, x=x)

    def image(self, image, x_mm, top_mm, width_mm, height_mm):
        self.previews.append((self.page, top_mm))
        super().image(image, x_mm, top_mm, width_mm, height_mm)


@pytest.mark.unit
class TestAttachmentLayout:

    def test_ensure_space_breaks_only_when_block_does_not_fit(self):
        layout = _PdfLayout(title="layout")
        layout.y = 100
        layout.ensure_space(60)
        assert (layout.page, layout.y) == (1, 100)

        layout.y = 270
        layout.ensure_space(60)
        assert (layout.page, layout.y) == (2, TOP_MARGIN_MM)

    async def _render(self, export_assembler, attachment, start_y):
        layout = RecordingLayout()
        layout.y = start_y
        bundle = ExportBundle(filename="layout.zip", content=b"")
        with zipfile.ZipFile(BytesIO(), "w") as archive:
            await export_assembler._render_attachment(layout, archive, bundle, set(), 1, attachment)
        return layout

    async def test_preview_stays_beside_its_heading_near_page_end(
        self, export_assembler, attachment_manager, db_session, owner, report_id, picture
    ):
        attachment = await attachment_manager.create_attachment(
            report_id, owner.user_id, picture, MediaType.PICTURE, db_session,
            title="Curb", description="Water pooled along the curb " * 12
        )

        layout = await self._render(export_assembler, attachment, start_y=245)

        assert layout.heading_pages == [2]
        assert layout.previews == [(2, TOP_MARGIN_MM)]

    async def test_preview_follows_description_longer_than_a_page(
        self, export_assembler, attachment_manager, db_session, owner, report_id, picture
    ):
        attachment = await attachment_manager.create_attachment(
            report_id, owner.user_id, picture, MediaType.PICTURE, db_session,
            title="Long", description="word " * 600
        )

        layout = await self._render(export_assembler, attachment, start_y=100)

        assert layout.heading_pages == [2]
        assert layout.previews == [(layout.page, TOP_MARGIN_MM)]
        assert layout.page > 2
