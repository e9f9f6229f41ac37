"""
Incident Report Service - Test Configuration and Fixtures
"""

from io import BytesIO
from typing import AsyncGenerator, Dict, Set

import httpx
import pytest
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from report_service.core.attachment_manager import AttachmentManager
from report_service.core.export_assembler import ExportAssembler
from report_service.core.ownership import OwnershipGuard
from report_service.core.report_manager import ReportManager
from report_service.core.user_manager import UserManager
from report_service.infrastructure.database.models import Base
from report_service.infrastructure.storage import MediaFetcher, StorageError, StorageProvider
from report_service.models import MediaFile, User

BLOB_BASE_URL = "https://blob.test"


class InMemoryStorage(StorageProvider):
    """Blob store double keeping blobs in a dict keyed by URL"""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.fail_uploads = False
        self.fail_deletes = False
        self.deleted: Set[str] = set()

    async def upload(self, file_stream, key, content_type):
        if self.fail_uploads:
            raise StorageError("upload rejected")
        file_stream.seek(0)
        url = f"{BLOB_BASE_URL}/{key}"
        self.blobs[url] = file_stream.read()
        return url

    async def delete(self, url):
        if self.fail_deletes:
            return False
        self.deleted.add(url)
        return self.blobs.pop(url, None) is not None

    async def health_check(self):
        return True


def png_bytes(size=(64, 48), color=(200, 30, 30)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
async def db_session(tmp_path) -> AsyncGenerator[AsyncSession, None]:
    """Fresh SQLite database per test"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def broken_urls() -> Set[str]:
    """URLs the mock media server answers with HTTP 500"""
    return set()


@pytest.fixture
def fetcher(storage: InMemoryStorage, broken_urls: Set[str]) -> MediaFetcher:
    """MediaFetcher backed by httpx.MockTransport serving the in-memory blobs"""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url in broken_urls:
            return httpx.Response(500)
        if url not in storage.blobs:
            return httpx.Response(404)
        return httpx.Response(200, content=storage.blobs[url])

    return MediaFetcher(transport=httpx.MockTransport(handler))


@pytest.fixture
def guard() -> OwnershipGuard:
    return OwnershipGuard()


@pytest.fixture
def user_manager() -> UserManager:
    return UserManager()


@pytest.fixture
def report_manager(guard: OwnershipGuard) -> ReportManager:
    return ReportManager(guard=guard)


@pytest.fixture
def attachment_manager(storage: InMemoryStorage, guard: OwnershipGuard) -> AttachmentManager:
    return AttachmentManager(storage=storage, guard=guard)


@pytest.fixture
def export_assembler(
    report_manager: ReportManager,
    attachment_manager: AttachmentManager,
    fetcher: MediaFetcher,
    guard: OwnershipGuard
) -> ExportAssembler:
    return ExportAssembler(
        report_manager=report_manager,
        attachment_manager=attachment_manager,
        fetcher=fetcher,
        guard=guard
    )


@pytest.fixture
async def owner(db_session: AsyncSession, user_manager: UserManager) -> User:
    return await user_manager.sync_user(
        google_id="google-owner",
        email="owner@example.com",
        username="Report Owner",
        avatar_url="https://avatars.test/owner.png",
        db=db_session
    )


@pytest.fixture
async def stranger(db_session: AsyncSession, user_manager: UserManager) -> User:
    return await user_manager.sync_user(
        google_id="google-stranger",
        email="stranger@example.com",
        username="Someone Else",
        avatar_url="https://avatars.test/stranger.png",
        db=db_session
    )


@pytest.fixture
async def report_id(db_session: AsyncSession, report_manager: ReportManager, owner: User) -> str:
    return await report_manager.create_empty_report(owner.user_id, db_session)


@pytest.fixture
def picture() -> MediaFile:
    return MediaFile(content=png_bytes(), filename="street photo.png", content_type="image/png")


@pytest.fixture
def make_png():
    return png_bytes
