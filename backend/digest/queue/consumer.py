"""SQS work queue consumer.

Receives file IDs, hands each one to the pipeline and deletes the message
only when the run completed. Failed runs leave the message on the queue so
the queue's own redelivery policy applies.
"""

import asyncio
from datetime import datetime
from functools import partial
from typing import Any, Dict, List, Optional, Protocol, Set

import structlog

from digest.config import get_queue_settings
from digest.core.exceptions import ConfigurationError
from digest.types import PipelineRun

logger = structlog.get_logger()

SQS_MAX_BATCH = 10


class MessageHandler(Protocol):
    """Anything that can process a file ID."""

    async def handle(self, file_id: str) -> PipelineRun:
        ...


class SQSQueueConsumer:
    """Long-polls an SQS queue and dispatches messages concurrently.

    boto3 is synchronous, so every SQS call runs in the default executor.

    Example:
        ```python
        consumer = SQSQueueConsumer(coordinator)
        await consumer.start()

        # Later, stop it
        await consumer.stop()
        ```
    """

    def __init__(
        self,
        handler: MessageHandler,
        queue_url: Optional[str] = None,
        region: Optional[str] = None,
        concurrency: Optional[int] = None,
        wait_time_seconds: Optional[int] = None,
        error_backoff_seconds: Optional[float] = None,
        idle_sleep_seconds: Optional[float] = None,
        sqs_client: Optional[Any] = None,
    ) -> None:
        """Initialize the consumer.

        Args:
            handler: Pipeline entry point called once per message
            queue_url: SQS queue URL (from settings if None)
            region: AWS region (from settings if None)
            concurrency: Maximum runs in flight (from settings if None)
            wait_time_seconds: Long-poll duration (from settings if None)
            error_backoff_seconds: Pause after a failed receive
            idle_sleep_seconds: Pause after an empty receive when not long polling
            sqs_client: Preconfigured boto3 SQS client, mainly for tests
        """
        settings = get_queue_settings()

        self.handler = handler
        self.queue_url = queue_url or settings.url
        self.region = region or settings.region
        self.concurrency = concurrency or settings.concurrency
        self.wait_time_seconds = (
            wait_time_seconds if wait_time_seconds is not None else settings.wait_time_seconds
        )
        self.error_backoff_seconds = (
            error_backoff_seconds
            if error_backoff_seconds is not None
            else settings.error_backoff_seconds
        )
        self.idle_sleep_seconds = idle_sleep_seconds or settings.idle_sleep_seconds

        self._sqs = sqs_client
        self._task: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()
        self._running = False

        self._received = 0
        self._succeeded = 0
        self._failed = 0
        self._last_error: Optional[str] = None
        self._last_receive: Optional[datetime] = None

        logger.info(
            "queue_consumer_initialized",
            queue_url=self.queue_url,
            concurrency=self.concurrency,
        )

    def _client(self) -> Any:
        if self._sqs is None:
            if not self.queue_url:
                raise ConfigurationError("QUEUE_URL is required to consume messages")
            import boto3

            self._sqs = boto3.client("sqs", region_name=self.region)
        return self._sqs

    async def start(self) -> None:
        """Start the receive loop."""
        if self._running:
            logger.warning("queue_consumer_already_running")
            return

        self._client()
        self._running = True
        self._task = asyncio.create_task(self._run_loop())

        logger.info("queue_consumer_started")

    async def stop(self) -> None:
        """Stop receiving and wait for in-flight runs to finish."""
        if not self._running:
            return

        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        await self.drain()
        logger.info("queue_consumer_stopped")

    async def drain(self) -> None:
        """Wait for every dispatched run to finish."""
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _run_loop(self) -> None:
        while self._running:
            if len(self._in_flight) >= self.concurrency:
                await asyncio.wait(self._in_flight, return_when=asyncio.FIRST_COMPLETED)
                continue

            try:
                dispatched = await self.poll_once()
            except Exception as e:
                self._last_error = str(e)
                logger.error("queue_consumer_error", error=str(e))
                await asyncio.sleep(self.error_backoff_seconds)
                continue

            # Short polling returns immediately on an empty queue
            if dispatched == 0 and self.wait_time_seconds == 0:
                await asyncio.sleep(self.idle_sleep_seconds)

    async def poll_once(self) -> int:
        """
        Receive one batch and dispatch it.

        Returns:
            Number of messages dispatched
        """
        free = max(0, self.concurrency - len(self._in_flight))
        if free == 0:
            return 0

        messages = await self._receive(min(SQS_MAX_BATCH, free))
        self._last_receive = datetime.utcnow()

        for message in messages:
            self._received += 1
            task = asyncio.create_task(self._process(message))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

        return len(messages)

    async def _receive(self, max_messages: int) -> List[Dict[str, Any]]:
        client = self._client()
        loop = asyncio.get_event_loop()
        response = await loop.run_in_executor(
            None,
            partial(
                client.receive_message,
                QueueUrl=self.queue_url,
                MaxNumberOfMessages=max_messages,
                WaitTimeSeconds=self.wait_time_seconds,
            ),
        )
        return response.get("Messages", [])

    async def _delete(self, receipt_handle: str) -> None:
        client = self._client()
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(
            None,
            partial(
                client.delete_message,
                QueueUrl=self.queue_url,
                ReceiptHandle=receipt_handle,
            ),
        )

    async def _process(self, message: Dict[str, Any]) -> None:
        file_id = str(message.get("Body", "")).strip()
        message_id = message.get("MessageId")

        try:
            run = await self.handler.handle(file_id)
        except Exception as e:
            self._failed += 1
            self._last_error = str(e)
            logger.error("message_handler_error", message_id=message_id, file_id=file_id, error=str(e))
            return

        if not run.ok:
            self._failed += 1
            self._last_error = run.error
            logger.warning(
                "message_left_for_redelivery",
                message_id=message_id,
                file_id=file_id,
                error=run.error,
            )
            return

        try:
            await self._delete(message["ReceiptHandle"])
        except Exception as e:
            self._last_error = str(e)
            logger.error("message_delete_failed", message_id=message_id, error=str(e))
            return

        self._succeeded += 1
        logger.debug("message_acknowledged", message_id=message_id, file_id=file_id)

    def get_stats(self) -> Dict[str, Any]:
        """Get consumer statistics.

        Returns:
            Statistics dictionary
        """
        return {
            "is_running": self._running,
            "queue_url": self.queue_url,
            "concurrency": self.concurrency,
            "in_flight": len(self._in_flight),
            "received": self._received,
            "succeeded": self._succeeded,
            "failed": self._failed,
            "last_error": self._last_error,
            "last_receive": self._last_receive.isoformat() if self._last_receive else None,
        }
