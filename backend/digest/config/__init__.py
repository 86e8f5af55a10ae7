"""Configuration module for Box Digest."""

from digest.config.settings import (
    DatabaseSettings,
    DigestSettings,
    DocumentStoreSettings,
    EntityTaggingSettings,
    ExtractionSettings,
    QueueSettings,
    RenderSettings,
    get_database_settings,
    get_document_store_settings,
    get_entity_tagging_settings,
    get_extraction_settings,
    get_queue_settings,
    get_render_settings,
    get_settings,
)

__all__ = [
    "DigestSettings",
    "DocumentStoreSettings",
    "ExtractionSettings",
    "EntityTaggingSettings",
    "RenderSettings",
    "QueueSettings",
    "DatabaseSettings",
    "get_settings",
    "get_document_store_settings",
    "get_extraction_settings",
    "get_entity_tagging_settings",
    "get_render_settings",
    "get_queue_settings",
    "get_database_settings",
]
