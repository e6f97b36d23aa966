import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from frontdesk.core.logging import setup_logging
from frontdesk.core.rate_limiter import limiter
from frontdesk.middleware.request_logger import RequestLoggerMiddleware
from frontdesk.web.routers import reception_api


# -------------------------------------------------
# Logging
# -------------------------------------------------

setup_logging()
logger = logging.getLogger(__name__)


# -------------------------------------------------
# FastAPI
# -------------------------------------------------

app = FastAPI(
    title="Front Desk",
    description="Booking lifecycle and payment reconciliation for the reception desk",
    version="0.1.0",
)

# -------------------------------------------------
# Rate Limiting (slowapi)
# -------------------------------------------------
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(RequestLoggerMiddleware)

app.include_router(reception_api.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


# -------------------------------------------------
# Lifecycle
# -------------------------------------------------


@app.on_event("startup")
async def on_startup():
    logger.info("FastAPI startup")

    from frontdesk.database import init_db

    await init_db()


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("FastAPI shutdown")

    from frontdesk.database import engine

    await engine.dispose()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("frontdesk.main:app", host="0.0.0.0", port=8000)
