import uuid
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import database
from .models import AnalyticsEvent

logger = structlog.get_logger(__name__)


def track(event_name: str, company_id: Optional[uuid.UUID], properties: Optional[dict] = None):
    """Record an analytics event. Failures are logged and never reach the caller.

    Meant to run as a background task, after the response has been sent, so it
    uses its own session.
    """
    try:
        with Session(database.engine) as session:
            session.add(
                AnalyticsEvent(
                    event_name=event_name,
                    company_id=company_id,
                    properties=properties or {},
                )
            )
            session.commit()
    except SQLAlchemyError as exc:
        logger.warning("analytics_track_failed", event_name=event_name, error=str(exc))
