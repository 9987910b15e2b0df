# api/healthcheck.py
# Reports that the service is up, with its environment and version.

import logging
from fastapi import APIRouter

from eatinn.core.config import settings

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("/healthcheck")
async def healthcheck():
    logger.debug("Healthcheck endpoint accessed")
    return {
        "status": "available",
        "system_info": {
            "environment": settings.ENVIRONMENT,
            "version": settings.VERSION,
        },
    }
