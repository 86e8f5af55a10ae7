"""File and Service record persistence."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import JSON, String, Text, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from digest.config import get_database_settings
from digest.core.exceptions import PersistenceError, RecordNotFoundError
from digest.documents.models import EntityTags, File, FileSource, Service

logger = structlog.get_logger()


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class FileRecord(Base):
    """Stored file and its enrichment results."""

    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    service_id: Mapped[str] = mapped_column(String(64), index=True)
    name: Mapped[str] = mapped_column(String(1024), default="")
    source_id: Mapped[str] = mapped_column(String(255))

    # 'metadata' is reserved on declarative classes
    extracted_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata", JSON, nullable=True
    )
    text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ner: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<FileRecord(id={self.id}, name={self.name})>"


class ServiceRecord(Base):
    """Stored document store credentials."""

    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    refresh_token: Mapped[str] = mapped_column(Text)
    access_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ServiceRecord(id={self.id})>"


def _file_from_record(record: FileRecord) -> File:
    return File(
        id=record.id,
        service_id=record.service_id,
        name=record.name,
        source=FileSource(id=record.source_id),
        metadata=record.extracted_metadata,
        text=record.text,
        ner=EntityTags.model_validate(record.ner) if record.ner is not None else None,
    )


def _file_to_record(file: File) -> FileRecord:
    return FileRecord(
        id=file.id,
        service_id=file.service_id,
        name=file.name,
        source_id=file.source.id,
        extracted_metadata=file.metadata,
        text=file.text,
        ner=file.ner.model_dump() if file.ner is not None else None,
    )


class RecordStore:
    """Async SQLAlchemy repository for File and Service records.

    Example:
        ```python
        store = RecordStore("sqlite+aiosqlite:///./data/digest.db")
        await store.initialize()

        file = await store.find_file("f-1")
        file.text = "..."
        await store.save_file(file)
        ```
    """

    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None) -> None:
        """
        Initialize record store.

        Args:
            url: SQLAlchemy async database URL (default from settings)
            echo: Echo SQL statements (default from settings)
        """
        settings = get_database_settings()

        self.url = url or settings.url
        engine_kwargs: Dict[str, Any] = {
            "echo": settings.echo if echo is None else echo,
        }
        if not self.url.startswith("sqlite"):
            engine_kwargs["pool_size"] = settings.pool_size

        self.engine = create_async_engine(self.url, **engine_kwargs)
        self.async_session = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._initialized = False

    async def initialize(self) -> None:
        """Create tables if needed."""
        if self._initialized:
            return

        database = make_url(self.url).database
        if self.url.startswith("sqlite") and database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self._initialized = True
        logger.info("record_store_initialized", url=make_url(self.url).render_as_string(hide_password=True))

    async def close(self) -> None:
        """Dispose of the engine."""
        await self.engine.dispose()

    async def find_file(self, file_id: str) -> File:
        """
        Load a File record.

        Raises:
            RecordNotFoundError: If no record exists
        """
        await self.initialize()

        async with self.async_session() as session:
            result = await session.execute(select(FileRecord).where(FileRecord.id == file_id))
            record = result.scalar_one_or_none()

        if record is None:
            raise RecordNotFoundError("File", file_id)
        return _file_from_record(record)

    async def find_service(self, service_id: str) -> Service:
        """
        Load a Service record.

        Raises:
            RecordNotFoundError: If no record exists
        """
        await self.initialize()

        async with self.async_session() as session:
            result = await session.execute(
                select(ServiceRecord).where(ServiceRecord.id == service_id)
            )
            record = result.scalar_one_or_none()

        if record is None:
            raise RecordNotFoundError("Service", service_id)
        return Service(
            id=record.id,
            refresh_token=record.refresh_token,
            access_token=record.access_token,
        )

    async def save_file(self, file: File) -> None:
        """Insert or update a File record."""
        await self.initialize()

        try:
            async with self.async_session() as session:
                await session.merge(_file_to_record(file))
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save file {file.id}: {e}") from e

    async def save_service(self, service: Service) -> None:
        """Insert or update a Service record."""
        await self.initialize()

        try:
            async with self.async_session() as session:
                await session.merge(
                    ServiceRecord(
                        id=service.id,
                        refresh_token=service.refresh_token,
                        access_token=service.access_token,
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save service {service.id}: {e}") from e


class ResultStore:
    """Best-effort saves of partial pipeline results.

    Persistence errors are logged and never reach the caller, so a failed
    save cannot change the outcome of a run.
    """

    def __init__(self, records: RecordStore) -> None:
        self.records = records

    async def save_file(self, file: File, stage: str) -> bool:
        """
        Persist the file after a stage contributed to it.

        Args:
            file: File with the stage's contribution applied
            stage: Name of the contributing stage

        Returns:
            True if the save succeeded
        """
        try:
            await self.records.save_file(file)
        except Exception as e:
            logger.error("file_save_failed", file_id=file.id, stage=stage, error=str(e))
            return False

        logger.debug("file_saved", file_id=file.id, stage=stage)
        return True

    async def save_service(self, service: Service) -> bool:
        """Persist refreshed credentials."""
        try:
            await self.records.save_service(service)
        except Exception as e:
            logger.error("service_save_failed", service_id=service.id, error=str(e))
            return False

        logger.debug("service_saved", service_id=service.id)
        return True
