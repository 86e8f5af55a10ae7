"""Preview image stage."""

from pathlib import Path

import aiofiles.os
import structlog

from digest.stages.base import EnrichmentStage
from digest.types import StageInput, StageResult

logger = structlog.get_logger()

PDF_CONTENT_TYPE = "application/pdf"

CONVERTIBLE_CONTENT_TYPES = frozenset(
    {
        "text/plain",
        "text/csv",
        "application/msword",
        "application/vnd.ms-excel",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    }
)

PREVIEW_SUFFIX = ".preview.png"
CONVERTED_SUFFIX = ".converted.pdf"


class PreviewStage(EnrichmentStage):
    """Renders a first-page preview image.

    PDFs are rendered directly. Text and office documents are converted to
    an intermediate PDF first, which is deleted after rendering. Any other
    content type, or unknown metadata, is skipped.
    """

    name = "preview"

    async def execute(self, job: StageInput) -> StageResult:
        content_type = job.file.content_type
        if content_type is None:
            return self.skipped("content type unknown")

        renderer = self.context.renderer

        if content_type == PDF_CONTENT_TYPE:
            image = job.staging.allocate(PREVIEW_SUFFIX)
            await renderer.render_first_page(job.staged_path, image)
        elif content_type in CONVERTIBLE_CONTENT_TYPES:
            image = job.staging.allocate(PREVIEW_SUFFIX)
            pdf = job.staging.allocate(CONVERTED_SUFFIX)
            try:
                await renderer.convert_to_pdf(job.staged_path, pdf)
                await renderer.render_first_page(pdf, image)
            finally:
                await _remove_quietly(pdf)
        else:
            return self.skipped(f"no preview for {content_type}")

        await self.context.preview_sink.publish(job.file.id, image)
        return self.succeeded(content_type)


async def _remove_quietly(path: Path) -> None:
    try:
        if await aiofiles.os.path.exists(path):
            await aiofiles.os.remove(path)
    except OSError as e:
        logger.warning("intermediate_remove_failed", path=str(path), error=str(e))
