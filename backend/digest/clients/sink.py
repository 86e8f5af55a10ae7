"""Preview image hand-off."""

from pathlib import Path

import structlog

from digest.clients.base import PreviewSink

logger = structlog.get_logger()


class LoggingPreviewSink(PreviewSink):
    """Records the hand-off without keeping the image."""

    async def publish(self, file_id: str, image_path: Path) -> None:
        # TODO: upload to the long-term preview bucket once it is provisioned
        logger.info("preview_generated", file_id=file_id, image=image_path.name)
