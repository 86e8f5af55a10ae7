"""External process toolchain for preview rendering."""

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import aiofiles.os
import structlog

from digest.clients.base import RenderingToolchain
from digest.config import get_render_settings
from digest.core.exceptions import RenderError

logger = structlog.get_logger()


@dataclass
class ProcessResult:
    """Outcome of one external process."""

    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    execution_time_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessRunner:
    """Runs an executable with arguments, never through a shell."""

    async def run(self, args: Sequence[str], timeout: float) -> ProcessResult:
        """
        Run a process to completion.

        Args:
            args: Executable followed by its arguments
            timeout: Seconds before the process is killed

        Returns:
            ProcessResult with exit status and output

        Raises:
            RenderError: If the executable is missing or the timeout expires
        """
        command = [str(a) for a in args]
        start = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise RenderError(f"Could not start {command[0]}: {e}", command=" ".join(command)) from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError as e:
            await _terminate(process)
            raise RenderError(
                f"{command[0]} timed out after {timeout} seconds",
                command=" ".join(command),
            ) from e
        except asyncio.CancelledError:
            await _terminate(process)
            raise

        return ProcessResult(
            command=command,
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            execution_time_ms=(time.monotonic() - start) * 1000,
        )


async def _terminate(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        # Already exited
        pass
    await process.wait()


class ImageMagickToolchain(RenderingToolchain):
    """ImageMagick ``convert`` for rendering and ``unoconv`` for conversion."""

    def __init__(
        self,
        runner: Optional[ProcessRunner] = None,
        convert_binary: Optional[str] = None,
        unoconv_binary: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        settings = get_render_settings()

        self.runner = runner or ProcessRunner()
        self.convert_binary = convert_binary or settings.convert_binary
        self.unoconv_binary = unoconv_binary or settings.unoconv_binary
        self.timeout = timeout or settings.timeout_seconds

    async def render_first_page(self, source: Path, destination: Path) -> Path:
        result = await self.runner.run(
            [self.convert_binary, f"{source}[0]", str(destination)],
            timeout=self.timeout,
        )
        return await self._check(result, destination)

    async def convert_to_pdf(self, source: Path, destination: Path) -> Path:
        result = await self.runner.run(
            [self.unoconv_binary, "-f", "pdf", "-o", str(destination), str(source)],
            timeout=self.timeout,
        )
        return await self._check(result, destination)

    async def _check(self, result: ProcessResult, destination: Path) -> Path:
        if not result.ok:
            raise RenderError(
                f"{result.command[0]} exited with status {result.returncode}",
                command=" ".join(result.command),
                returncode=result.returncode,
                output=result.stderr[-2000:],
            )
        if not await aiofiles.os.path.exists(destination):
            raise RenderError(
                f"{result.command[0]} did not produce {destination.name}",
                command=" ".join(result.command),
            )

        logger.debug(
            "render_command_completed",
            command=result.command[0],
            execution_time_ms=round(result.execution_time_ms, 1),
        )
        return destination
