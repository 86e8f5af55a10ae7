"""Record models for the enrichment pipeline."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

MetadataValue = Union[str, int, float]

CONTENT_TYPE_FIELD = "Content-Type"

ENTITY_CATEGORIES: Tuple[str, ...] = (
    "LOCATION",
    "ORGANIZATION",
    "DATE",
    "MONEY",
    "PERSON",
    "PERCENT",
    "TIME",
)


class FileSource(BaseModel):
    """Reference to a file in the document store namespace."""

    id: str = Field(..., description="Document store file identifier")


class EntityTags(BaseModel):
    """Named entities grouped by category, in order of appearance."""

    LOCATION: List[str] = Field(default_factory=list)
    ORGANIZATION: List[str] = Field(default_factory=list)
    DATE: List[str] = Field(default_factory=list)
    MONEY: List[str] = Field(default_factory=list)
    PERSON: List[str] = Field(default_factory=list)
    PERCENT: List[str] = Field(default_factory=list)
    TIME: List[str] = Field(default_factory=list)

    def add(self, category: str, entity: str) -> bool:
        """Append an entity to its category.

        Returns:
            False if the category is not one of the fixed categories
        """
        if category not in ENTITY_CATEGORIES:
            return False
        getattr(self, category).append(entity)
        return True

    def total(self) -> int:
        """Total number of entities across categories."""
        return sum(len(getattr(self, c)) for c in ENTITY_CATEGORIES)


class File(BaseModel):
    """A file being enriched."""

    id: str = Field(..., description="File record ID")
    service_id: str = Field(..., description="Owning service record ID")
    name: str = Field(default="", description="Original file name")
    source: FileSource
    metadata: Optional[Dict[str, MetadataValue]] = None
    text: Optional[str] = None
    ner: Optional[EntityTags] = None

    @property
    def extension_hint(self) -> str:
        """Extension of the original name including the dot, or empty."""
        index = self.name.rfind(".")
        if index == -1:
            return ""
        return self.name[index:]

    @property
    def content_type(self) -> Optional[str]:
        """Media type reported by metadata extraction, without parameters."""
        if self.metadata is None or CONTENT_TYPE_FIELD not in self.metadata:
            return None
        value = self.metadata[CONTENT_TYPE_FIELD]
        if not isinstance(value, str):
            return None
        media_type = value.split(";", 1)[0].strip().lower()
        return media_type or None


class Service(BaseModel):
    """Per-tenant document store credentials."""

    id: str = Field(..., description="Service record ID")
    refresh_token: str = Field(..., repr=False)
    access_token: Optional[str] = Field(default=None, repr=False)


class TokenPair(BaseModel):
    """Result of a refresh grant."""

    access_token: str = Field(..., repr=False)
    refresh_token: str = Field(..., repr=False)


def coerce_metadata(raw: Dict[str, Any]) -> Dict[str, MetadataValue]:
    """Narrow an extraction response to string and number values.

    Lists become comma separated strings, booleans become ``"true"`` or
    ``"false"``; nulls and nested objects are dropped.
    """
    metadata: Dict[str, MetadataValue] = {}
    for key, value in raw.items():
        if isinstance(value, bool):
            metadata[key] = "true" if value else "false"
        elif isinstance(value, (str, int, float)):
            metadata[key] = value
        elif isinstance(value, list):
            metadata[key] = ", ".join(
                str(item) for item in value if item is not None and not isinstance(item, (dict, list))
            )
    return metadata
