"""Local staging area for files being processed."""

import asyncio
import shutil
import uuid
from pathlib import Path
from typing import List

import aiofiles.os
import structlog

logger = structlog.get_logger()


class StagingRun:
    """Paths allocated for a single pipeline run."""

    def __init__(self, file_id: str, directory: Path) -> None:
        self.file_id = file_id
        self.run_id = directory.name
        self.directory = directory
        self.paths: List[Path] = []
        self.released = False

    def allocate(self, suffix: str) -> Path:
        """Allocate a derived artifact path such as ``.preview.png``."""
        path = self.directory / f"{self.file_id}{suffix}"
        if path not in self.paths:
            self.paths.append(path)
        return path


class TempStagingManager:
    """Allocates per-run staging paths and removes them afterwards.

    Every run gets its own directory under ``base_dir`` so that two runs
    never share a path, even for the same file ID.

    Example:
        ```python
        staging = TempStagingManager("/tmp")
        run = await staging.begin(file.id)
        try:
            path = staging.stage(run, file.id, file.extension_hint)
            ...
        finally:
            await staging.release(run)
        ```
    """

    def __init__(self, base_dir: Path) -> None:
        """
        Initialize staging manager.

        Args:
            base_dir: Directory under which run directories are created
        """
        self.base_dir = Path(base_dir)

    async def begin(self, file_id: str) -> StagingRun:
        """Create the directory for a new run."""
        directory = self.base_dir / f"digest-{uuid.uuid4().hex}"
        await aiofiles.os.makedirs(directory, exist_ok=True)
        logger.debug("staging_run_started", file_id=file_id, directory=str(directory))
        return StagingRun(file_id, directory)

    def stage(self, run: StagingRun, file_id: str, extension_hint: str) -> Path:
        """
        Allocate the path the source file is copied to.

        Args:
            run: Active staging run
            file_id: File record ID
            extension_hint: Original extension including the dot

        Returns:
            Path unique to this run
        """
        path = run.directory / f"{file_id}{extension_hint}"
        if path in run.paths:
            run.paths.remove(path)
        run.paths.insert(0, path)
        return path

    async def release(self, run: StagingRun) -> None:
        """
        Delete every path allocated during the run.

        Errors are logged and swallowed. Calling this twice is a no-op.

        Args:
            run: Run to release
        """
        if run.released:
            logger.debug("staging_run_already_released", run_id=run.run_id)
            return
        run.released = True

        removed = 0
        for path in run.paths:
            try:
                if await aiofiles.os.path.exists(path):
                    await aiofiles.os.remove(path)
                    removed += 1
            except OSError as e:
                logger.warning("staging_remove_failed", path=str(path), error=str(e))

        try:
            loop = asyncio.get_event_loop()
            await loop.run_in_executor(None, shutil.rmtree, run.directory)
        except OSError as e:
            logger.warning("staging_rmdir_failed", directory=str(run.directory), error=str(e))

        logger.debug("staging_run_released", run_id=run.run_id, files_removed=removed)
