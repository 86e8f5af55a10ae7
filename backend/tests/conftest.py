"""Shared fixtures for the pipeline tests."""

import pytest

from digest.core.context import PipelineContext
from digest.documents.models import Service

from fakes import (
    CountingStagingManager,
    FakeDocumentStore,
    FakeExtraction,
    FakeRenderer,
    FakeTagger,
    InMemoryRecordStore,
    RecordingSink,
    make_file,
)


@pytest.fixture
def records() -> InMemoryRecordStore:
    store = InMemoryRecordStore()
    store.files["file-1"] = make_file()
    store.services["svc-1"] = Service(id="svc-1", refresh_token="refresh-1", access_token="access-1")
    return store


@pytest.fixture
def context(tmp_path, records) -> PipelineContext:
    """Pipeline context wired entirely with fakes."""
    return PipelineContext(
        records=records,
        document_store=FakeDocumentStore(),
        extraction=FakeExtraction(),
        tagger=FakeTagger(),
        renderer=FakeRenderer(),
        staging=CountingStagingManager(tmp_path / "staging"),
        preview_sink=RecordingSink(),
    )
