"""Metadata extraction stage."""

from digest.documents.models import coerce_metadata
from digest.stages.base import EnrichmentStage
from digest.types import StageInput, StageResult


class MetadataStage(EnrichmentStage):
    """Stores the extraction service's metadata fields on the file."""

    name = "metadata"

    async def execute(self, job: StageInput) -> StageResult:
        raw = await self.context.extraction.extract_metadata(job.staged_path)

        job.file.metadata = coerce_metadata(raw)
        await self.context.results.save_file(job.file, self.name)

        return self.succeeded(f"{len(job.file.metadata)} fields")
