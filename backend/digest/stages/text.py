"""Full-text extraction stage."""

import re

from digest.stages.base import EnrichmentStage
from digest.types import StageInput, StageResult

_BREAKS = re.compile(r"\r?\n|\r|\t")


def normalize_text(raw: str) -> str:
    """Replace each line break and tab with a space and trim the ends."""
    return _BREAKS.sub(" ", raw).strip()


class TextStage(EnrichmentStage):
    """Stores normalized plain text on the file.

    An empty result is a real outcome ("no text found") and is stored;
    on failure the text stays unset.
    """

    name = "text"

    async def execute(self, job: StageInput) -> StageResult:
        raw = await self.context.extraction.extract_text(job.staged_path)

        job.file.text = normalize_text(raw)
        await self.context.results.save_file(job.file, self.name)

        return self.succeeded(f"{len(job.file.text)} characters")
