"""Work queue consumer."""

from digest.queue.consumer import MessageHandler, SQSQueueConsumer

__all__ = [
    "MessageHandler",
    "SQSQueueConsumer",
]
