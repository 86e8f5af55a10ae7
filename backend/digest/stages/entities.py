"""Named-entity tagging stage."""

import re
from typing import Optional

import structlog

from digest.documents.models import EntityTags
from digest.stages.base import EnrichmentStage
from digest.types import StageInput, StageResult

logger = structlog.get_logger()

TAG_PATTERN = re.compile(r"<([A-Z]+?)>(.+?)</\1>")


def parse_entity_tags(payload: str, file_id: Optional[str] = None) -> EntityTags:
    """
    Collect ``<TAG>entity</TAG>`` spans from a tagged payload.

    Matches are taken left to right without overlap. Duplicates are kept.
    Tags outside the fixed categories are dropped with a warning.

    Args:
        payload: Tagger response
        file_id: File the payload belongs to, for logging

    Returns:
        EntityTags with every category present
    """
    tags = EntityTags()
    for match in TAG_PATTERN.finditer(payload):
        category, entity = match.group(1), match.group(2)
        if not tags.add(category, entity):
            logger.warning("unknown_entity_tag", tag=category, file_id=file_id)
    return tags


class EntityStage(EnrichmentStage):
    """Tags entities in the extracted text."""

    name = "entities"

    async def execute(self, job: StageInput) -> StageResult:
        text = job.file.text
        if text is None:
            return self.skipped("text was not extracted")
        if len(text) == 0:
            return self.skipped("no text to tag")

        payload = await self.context.tagger.tag(text)

        job.file.ner = parse_entity_tags(payload, file_id=job.file.id)
        await self.context.results.save_file(job.file, self.name)

        return self.succeeded(f"{job.file.ner.total()} entities")
