"""Enrichment stages run by the pipeline coordinator."""

from digest.stages.base import EnrichmentStage
from digest.stages.entities import EntityStage, parse_entity_tags
from digest.stages.metadata import MetadataStage
from digest.stages.preview import CONVERTIBLE_CONTENT_TYPES, PDF_CONTENT_TYPE, PreviewStage
from digest.stages.text import TextStage, normalize_text

__all__ = [
    "EnrichmentStage",
    "MetadataStage",
    "TextStage",
    "EntityStage",
    "PreviewStage",
    "parse_entity_tags",
    "normalize_text",
    "PDF_CONTENT_TYPE",
    "CONVERTIBLE_CONTENT_TYPES",
]
