"""Tests for the pipeline coordinator and its state machine."""

import asyncio

import pytest

from digest.core.exceptions import (
    ContentRetrievalError,
    CredentialRefreshError,
    EntityTaggingError,
    ExtractionError,
    InvalidTransitionError,
    RenderError,
)
from digest.core.pipeline import TRANSITIONS, PipelineCoordinator
from digest.documents.models import EntityTags
from digest.documents.retriever import ContentRetriever
from digest.types import PipelineRun, PipelineState, StageStatus

S = PipelineState

HAPPY_PATH = [
    S.IDLE,
    S.RETRIEVING,
    S.METADATA_STAGE,
    S.TEXT_STAGE,
    S.ENTITY_STAGE,
    S.PREVIEW_STAGE,
    S.CLEANUP,
    S.COMPLETED,
]


class TestTransitions:
    """Test the transition table."""

    def test_terminal_states_have_no_exits(self):
        for state in S:
            if state.is_terminal:
                assert TRANSITIONS[state] == frozenset()

    def test_every_state_has_an_entry(self):
        assert set(TRANSITIONS) == set(S)

    def test_illegal_transition_raises(self, context):
        coordinator = PipelineCoordinator(context)
        run = PipelineRun(file_id="file-1")

        with pytest.raises(InvalidTransitionError):
            coordinator._transition(run, S.PREVIEW_STAGE)

        assert run.state == S.IDLE
        assert run.transitions == []


class TestPipelineCoordinator:
    """Test end-to-end runs against fakes."""

    @pytest.mark.asyncio
    async def test_happy_path(self, context, records):
        """All four stages run in order and every result is saved."""
        run = await PipelineCoordinator(context).handle("file-1")

        assert run.ok
        assert run.visited == HAPPY_PATH
        assert [r.stage for r in run.stage_results] == ["metadata", "text", "entities", "preview"]
        assert all(r.status == StageStatus.SUCCEEDED for r in run.stage_results)

        saved = records.files["file-1"]
        assert saved.metadata == {"Content-Type": "application/pdf"}
        assert saved.text == "Alice met Bob in Paris."
        assert saved.ner.PERSON == ["Alice", "Bob"]
        assert saved.ner.LOCATION == ["Paris"]
        assert len(context.preview_sink.published) == 1

    @pytest.mark.asyncio
    async def test_results_are_saved_incrementally(self, context, records):
        """Each successful stage saves the file before the next one runs."""
        await PipelineCoordinator(context).handle("file-1")

        first, second, third = records.file_saves
        assert first.metadata is not None and first.text is None
        assert second.text is not None and second.ner is None
        assert third.ner is not None

    @pytest.mark.asyncio
    async def test_cleanup_runs_exactly_once(self, context):
        """Cleanup happens once even when every stage fails."""
        context.extraction.metadata_error = ExtractionError("down")
        context.extraction.text_error = ExtractionError("down")
        context.tagger.error = EntityTaggingError("down")
        context.renderer.render_error = RenderError("down")

        run = await PipelineCoordinator(context).handle("file-1")

        assert run.cleanup_count == 1
        assert context.staging.release_count == 1
        assert run.visited.count(S.CLEANUP) == 1
        assert not context.staging.runs[0].directory.exists()

    @pytest.mark.asyncio
    async def test_staged_file_removed_after_success(self, context):
        await PipelineCoordinator(context).handle("file-1")

        staging_run = context.staging.runs[0]
        assert staging_run.released
        assert not staging_run.directory.exists()
        assert all(not path.exists() for path in staging_run.paths)

    @pytest.mark.parametrize(
        "attribute, error",
        [
            ("refresh_error", CredentialRefreshError("invalid_grant")),
            ("stream_error", ContentRetrievalError("HTTP 404")),
        ],
    )
    @pytest.mark.asyncio
    async def test_retrieval_failure_skips_stages(self, context, records, attribute, error):
        """No enrichment stage runs when retrieval fails, and the run fails."""
        setattr(context.document_store, attribute, error)

        run = await PipelineCoordinator(context).handle("file-1")

        assert not run.ok
        assert run.state == S.FAILED
        assert run.error_type == type(error).__name__
        assert run.stage_results == []
        assert run.visited == [S.IDLE, S.RETRIEVING, S.CLEANUP, S.FAILED]
        assert context.extraction.calls == []
        assert context.tagger.calls == []
        assert context.staging.release_count == 1
        assert records.file_saves == []

    @pytest.mark.asyncio
    async def test_missing_file_fails_without_cleanup(self, context):
        """A run that never reached retrieval has nothing to clean up."""
        run = await PipelineCoordinator(context).handle("unknown")

        assert run.state == S.FAILED
        assert run.error_type == "RecordNotFoundError"
        assert run.visited == [S.IDLE, S.FAILED]
        assert run.cleanup_count == 0
        assert context.staging.runs == []

    @pytest.mark.asyncio
    async def test_missing_service_fails(self, context, records):
        records.services.clear()

        run = await PipelineCoordinator(context).handle("file-1")

        assert run.state == S.FAILED
        assert context.document_store.refresh_calls == []

    @pytest.mark.asyncio
    async def test_database_failure_on_load_fails(self, context, records):
        records.fail_loads = True

        run = await PipelineCoordinator(context).handle("file-1")

        assert run.state == S.FAILED
        assert run.error_type == "ConnectionError"

    @pytest.mark.asyncio
    async def test_metadata_failure_does_not_block_later_stages(self, context, records):
        """Text and entities still run; preview is skipped for lack of a content type."""
        context.extraction.metadata_error = ExtractionError("Tika unavailable")

        run = await PipelineCoordinator(context).handle("file-1")

        assert run.ok
        assert run.visited == HAPPY_PATH
        assert run.result_for("metadata").status == StageStatus.FAILED
        assert run.result_for("text").status == StageStatus.SUCCEEDED
        assert run.result_for("entities").status == StageStatus.SUCCEEDED
        assert run.result_for("preview").status == StageStatus.SKIPPED
        assert records.files["file-1"].metadata is None
        assert records.files["file-1"].ner is not None

    @pytest.mark.asyncio
    async def test_empty_text_skips_tagging(self, context, records):
        context.extraction.text = "\n\n"

        run = await PipelineCoordinator(context).handle("file-1")

        assert run.ok
        assert context.tagger.calls == []
        assert records.files["file-1"].text == ""
        assert records.files["file-1"].ner is None

    @pytest.mark.asyncio
    async def test_msword_document_is_converted(self, context):
        context.extraction.metadata = {"Content-Type": "application/msword"}

        run = await PipelineCoordinator(context).handle("file-1")

        assert run.result_for("preview").status == StageStatus.SUCCEEDED
        assert context.renderer.converted

    @pytest.mark.asyncio
    async def test_pdf_document_is_not_converted(self, context):
        run = await PipelineCoordinator(context).handle("file-1")

        assert run.result_for("preview").status == StageStatus.SUCCEEDED
        assert not context.renderer.converted

    @pytest.mark.asyncio
    async def test_persistence_failure_is_not_fatal(self, context, records):
        """Runs complete even when no result can be saved."""
        records.fail_saves = True

        run = await PipelineCoordinator(context).handle("file-1")

        assert run.ok
        assert all(r.status == StageStatus.SUCCEEDED for r in run.stage_results)
        assert records.file_saves == []

    @pytest.mark.asyncio
    async def test_cancellation_still_cleans_up(self, context):
        """A cancelled run moves to cleanup and releases staging once."""
        entered = asyncio.Event()

        async def hang(text):
            entered.set()
            await asyncio.Event().wait()

        context.tagger.tag = hang
        coordinator = PipelineCoordinator(context)
        task = asyncio.create_task(coordinator.handle("file-1"))
        await entered.wait()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert context.staging.release_count == 1
        assert not context.staging.runs[0].directory.exists()

    @pytest.mark.asyncio
    async def test_run_serializes(self, context):
        run = await PipelineCoordinator(context).handle("file-1")

        data = run.to_dict()

        assert data["state"] == "completed"
        assert data["ok"] is True
        assert [s["stage"] for s in data["stages"]] == ["metadata", "text", "entities", "preview"]
        assert data["finished_at"] is not None

    @pytest.mark.parametrize(
        "attribute, error_type",
        [
            ("hang_refresh", "CredentialRefreshError"),
            ("hang_stream", "ContentRetrievalError"),
        ],
    )
    @pytest.mark.asyncio
    async def test_retrieval_timeout_fails_run(self, context, attribute, error_type):
        """A retrieval that exceeds its timeout fails the run and still cleans up."""
        setattr(context.document_store, attribute, True)
        retriever = ContentRetriever(
            context.document_store,
            context.results,
            context.staging,
            timeout=0.2,
        )

        run = await PipelineCoordinator(context, retriever=retriever).handle("file-1")

        assert run.state == S.FAILED
        assert run.error_type == error_type
        assert run.stage_results == []
        assert run.cleanup_count == 1
        assert context.staging.release_count == 1

    @pytest.mark.asyncio
    async def test_stored_results_do_not_feed_later_stages(self, context, records):
        """Text and metadata from an earlier run are not reused when extraction fails."""
        stored = records.files["file-1"]
        stored.metadata = {"Content-Type": "application/pdf"}
        stored.text = "Old Carol text"
        stored.ner = EntityTags(PERSON=["Carol"])
        context.extraction.metadata_error = ExtractionError("Tika unavailable")
        context.extraction.text_error = ExtractionError("Tika unavailable")

        run = await PipelineCoordinator(context).handle("file-1")

        assert run.ok
        assert context.tagger.calls == []
        assert context.renderer.calls == []
        assert run.result_for("entities").status == StageStatus.SKIPPED
        assert run.result_for("preview").status == StageStatus.SKIPPED
