import logging

from fastapi import FastAPI

from odd_one_out.api.routes import router
from odd_one_out.config import settings_from_env
from odd_one_out.timer import timers

app = FastAPI(title="odd-one-out", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=settings_from_env().log_level)
logger = logging.getLogger(__name__)


@app.on_event("shutdown")
async def _shutdown() -> None:
    # No memorize timer may fire once the loop is going away.
    timers.cancel_all()
    logger.info("cancelled pending memorize timers")


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "odd-one-out", "version": "0.1.0"}
