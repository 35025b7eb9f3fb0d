"""HTTP entry points: manual forecast run and schedule-write events."""

import hmac
import logging
from collections.abc import Callable
from dataclasses import asdict
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from .config import Config
from .forecast import compute_prep_forecasts
from .notifier import NotificationResult, Skipped, handle_schedule_write
from .push import PushSender
from .store import FirestoreStore

logger = logging.getLogger(__name__)


class ScheduleWriteEvent(BaseModel):
    """Before and after images of a schedules/{docId} write. None means absent."""

    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None


def create_app(
    store: FirestoreStore,
    send: PushSender,
    config: Config,
    clock: Callable[[], datetime] = lambda: datetime.now(UTC),
) -> FastAPI:
    app = FastAPI(title="PrepMaster Functions")

    def check_secret(secret: str | None) -> None:
        if config.event_secret is None:
            return
        if secret is None or not hmac.compare_digest(secret, config.event_secret):
            raise HTTPException(status_code=401, detail="Invalid event secret")

    @app.get("/")
    def read_root():
        return {"message": "PrepMaster functions are running"}

    @app.get("/computePrepForecastsNow", response_class=PlainTextResponse)
    def compute_prep_forecasts_now():
        try:
            compute_prep_forecasts(
                store,
                clock(),
                config.tz,
                lookback_days=config.forecast_lookback_days,
                horizon_days=config.forecast_horizon_days,
            )
        except Exception as e:
            logger.exception("Manual forecast run failed")
            return PlainTextResponse(str(e) or "error", status_code=500)
        return "ok"

    @app.post("/events/schedules/{doc_id}")
    def schedule_written(
        doc_id: str,
        event: ScheduleWriteEvent,
        x_prepmaster_secret: str | None = Header(default=None),
    ):
        check_secret(x_prepmaster_secret)

        # The stored document is authoritative for the after-image
        after = store.get_schedule_data(doc_id)
        if after is None and event.after is not None:
            logger.warning("Write event for unknown schedule %s ignored", doc_id)
            result: NotificationResult = Skipped("schedule not found")
        else:
            # Always 200: a failed push must not make the trigger retry the write
            result = handle_schedule_write(store, send, doc_id, event.before, after, clock())
        return {"outcome": type(result).__name__.lower(), **asdict(result)}

    return app
