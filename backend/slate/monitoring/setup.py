import logging
import time

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

share_link_access = Counter(
    "share_link_access_total", "Share link access attempts by outcome", ["outcome"]
)
notifications_sent = Counter("notifications_sent_total", "Notifications delivered", ["kind"])
notifications_failed = Counter(
    "notifications_failed_total", "Notifications dropped after all retries", ["kind"]
)

def report_link_access(outcome: str) -> None:
    share_link_access.labels(outcome=outcome).inc()

def report_notification(kind: str, delivered: bool) -> None:
    if delivered:
        notifications_sent.labels(kind=kind).inc()
    else:
        notifications_failed.labels(kind=kind).inc()

def setup_monitoring(app: ASGIApp):
    Instrumentator().instrument(app).expose(app, endpoint="/api/metrics", include_in_schema=False)

    @app.middleware("http")
    async def monitor_requests(request: Request, call_next):
        start_time = time.time()
        response = None
        try:
            response = await call_next(request)
        except HTTPException as e:
            logger.exception("HTTP exception: %s %s -> %s", request.method, request.url.path, e.detail)
            response = JSONResponse(status_code=e.status_code, content={"detail": e.detail})
        except Exception as e:
            logger.exception("Unhandled error: %s %s -> %s", request.method, request.url.path, e)
            response = JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
        finally:
            process_time = time.time() - start_time
            logger.info("method=%s path=%s status=%s duration=%.4fs",
                        request.method, request.url.path,
                        getattr(response, "status_code", "?"), process_time)
        return response
