"""Staged uploads: store in tmp/<folder>/, move into media collections, expire.

Layout under StorageSettings.root:

    tmp/<folder-uuid>/temp_<uuid>.<ext>             staged upload (24h)
    media/<model_type>/<model_id>/<collection>/...  attached media

Hey future me - the upload endpoint stores the file FIRST and hands the folder id back to
the client; the create/update request later references that folder. That's why
move_temp_to_media() takes a folder, not bytes.
"""

import asyncio
import logging
import shutil
import time
import uuid
from datetime import timedelta
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from artistdesk.config import StorageSettings
from artistdesk.domain.exceptions import ValidationException
from artistdesk.domain.ports import ITemporaryFileMover, MediaOwner
from artistdesk.infrastructure.observability.logger_template import log_action
from artistdesk.infrastructure.persistence.models import MediaModel, TemporaryFileModel, utc_now
from artistdesk.infrastructure.persistence.repositories import (
    MediaRepository,
    TemporaryFileRepository,
)

logger = logging.getLogger(__name__)


class TemporaryFileService(ITemporaryFileMover):
    """Upload staging backed by the local filesystem and the temporary_files table."""

    def __init__(self, session: AsyncSession, storage: StorageSettings) -> None:
        self._session = session
        self._storage = storage
        self._temp_files = TemporaryFileRepository(session)
        self._media = MediaRepository(session)

    @property
    def tmp_dir(self) -> Path:
        return self._storage.tmp_dir

    @property
    def media_dir(self) -> Path:
        return self._storage.media_dir

    def temp_path(self, temp_file: TemporaryFileModel) -> Path:
        return self.tmp_dir / temp_file.folder / temp_file.filename

    async def store_temporary_file(
        self, filename: str, content: bytes, mime_type: str | None = None
    ) -> str:
        """Stage an upload and return its folder id.

        Raises:
            ValidationException: If the file is empty
        """
        if not content:
            raise ValidationException("Uploaded file is empty")

        folder = str(uuid.uuid4())
        extension = Path(filename).suffix.lower()
        stored_name = f"temp_{uuid.uuid4()}{extension}"
        target = self.tmp_dir / folder / stored_name

        await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_bytes, content)

        await self._temp_files.add(
            TemporaryFileModel(
                folder=folder,
                filename=stored_name,
                original_name=Path(filename).name,
                mime_type=mime_type,
                size=len(content),
                expires_at=utc_now() + timedelta(hours=self._storage.temp_file_expiry_hours),
            )
        )
        await self._session.commit()

        log_action(
            logger,
            "temporary_file_stored",
            "Temporary file stored",
            folder=folder,
            size=len(content),
        )
        return folder

    # Yo, clearing the collection happens here too (not only in the lifecycle service) so
    # any caller gets "single file collection" semantics for profile photos.
    async def move_temp_to_media(
        self, folder: str, collection_name: str, entity: MediaOwner
    ) -> bool:
        """Move the staged file into entity's media collection.

        Returns:
            True if a file was moved, False if the folder is unknown or its file vanished
        """
        temp_file = await self._temp_files.get_by_folder(folder)
        if temp_file is None:
            logger.warning(f"No temporary file registered for folder {folder}")
            return False

        source = self.temp_path(temp_file)
        if not await asyncio.to_thread(source.exists):
            logger.warning(f"Temporary file {temp_file.filename} not found on disk")
            await self._cleanup_temporary_file(temp_file)
            await self._session.commit()
            return False

        old_paths = await self._media.clear_collection(entity.media_type, entity.id, collection_name)
        for old_path in old_paths:
            await asyncio.to_thread(Path(old_path).unlink, missing_ok=True)

        extension = Path(temp_file.filename).suffix
        # Timestamp plus a random suffix so a replacement never lands on the old path
        file_name = (
            f"{collection_name.rstrip('s')}_{int(time.time())}_{uuid.uuid4().hex[:8]}{extension}"
        )
        destination = self.media_dir / entity.media_type / str(entity.id) / collection_name / file_name
        await asyncio.to_thread(destination.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.move, str(source), str(destination))

        await self._media.add(
            MediaModel(
                model_type=entity.media_type,
                model_id=entity.id,
                collection_name=collection_name,
                name=Path(temp_file.original_name).stem,
                file_name=file_name,
                mime_type=temp_file.mime_type,
                size=temp_file.size,
                path=str(destination),
            )
        )
        await self._cleanup_temporary_file(temp_file)
        await self._session.commit()

        log_action(
            logger,
            "temporary_file_moved_to_media",
            "Temporary file moved to media collection",
            folder=folder,
            collection=collection_name,
            model_type=entity.media_type,
            model_id=entity.id,
        )
        return True

    async def cleanup_expired_temporary_files(self) -> int:
        """Delete expired staged uploads (file + row). Returns how many were removed."""
        cleaned = 0
        for temp_file in await self._temp_files.list_expired(utc_now()):
            try:
                await self._cleanup_temporary_file(temp_file)
            except OSError as e:
                logger.error(f"Failed to cleanup temporary file {temp_file.id}: {e}")
                continue
            cleaned += 1
        await self._session.commit()
        return cleaned

    async def cleanup_empty_tmp_folders(self) -> int:
        """Remove empty directories left under tmp/. Returns how many were removed."""
        if not await asyncio.to_thread(self.tmp_dir.is_dir):
            return 0

        removed = 0
        for directory in await asyncio.to_thread(lambda: list(self.tmp_dir.iterdir())):
            if not directory.is_dir():
                continue
            if any(directory.iterdir()):
                continue
            await asyncio.to_thread(directory.rmdir)
            removed += 1
        return removed

    async def _cleanup_temporary_file(self, temp_file: TemporaryFileModel) -> None:
        path = self.temp_path(temp_file)
        await asyncio.to_thread(path.unlink, missing_ok=True)
        folder_path = path.parent
        if folder_path.is_dir() and not any(folder_path.iterdir()):
            await asyncio.to_thread(folder_path.rmdir)
        await self._temp_files.delete(temp_file)
