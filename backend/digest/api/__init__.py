"""Operations API for the Box Digest worker."""

from digest.api.routes.files import router as files_router
from digest.api.routes.stats import router as stats_router

__all__ = [
    "files_router",
    "stats_router",
]
