import logging
import json
import time
import random
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from eatinn.core.config import settings

# Logger for one-line JSON request events. It does not propagate so the root
# handlers don't print every event a second time.
structured_logger = logging.getLogger("api.structured_log")
structured_logger.propagate = False

if not structured_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    structured_logger.addHandler(handler)
    structured_logger.setLevel(logging.INFO)


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Wide-event structured logging with tail sampling.

    Rules:
    1. Always log errors (status >= 500)
    2. Always log slow requests (> LOG_SLOW_THRESHOLD_MS)
    3. Otherwise log a random LOG_SAMPLE_RATE share of requests
    """

    def __init__(self, app, slow_threshold_ms: int | None = None, sample_rate: float | None = None):
        super().__init__(app)
        self.slow_threshold_ms = (
            settings.LOG_SLOW_THRESHOLD_MS if slow_threshold_ms is None else slow_threshold_ms
        )
        self.sample_rate = settings.LOG_SAMPLE_RATE if sample_rate is None else sample_rate

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()

        response = None
        error_details = None
        status_code = 500  # Default to 500 if exception occurs

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            error_details = str(e)
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000

            if status_code >= 500:
                should_log = True
            elif duration_ms > self.slow_threshold_ms:
                should_log = True
            else:
                should_log = random.random() < self.sample_rate

            if should_log:
                log_payload = {
                    "timestamp": time.time(),
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": round(duration_ms, 2),
                    "client_ip": request.client.host if request.client else None,
                    "user_agent": request.headers.get("user-agent"),
                    "query_params": dict(request.query_params),
                    "recipe_id": request.path_params.get("recipe_id"),
                    "error": error_details,
                }
                structured_logger.info(json.dumps(log_payload, default=str))

        return response
