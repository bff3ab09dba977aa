"""
Report submission and listing.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from sbu_reports.config import DEFAULT_PAGE_SIZE
from sbu_reports.api.schemas import (
    Pagination, ReportCreate, ReportCreated, ReportPage, Ticket, TicketStatus,
)
from sbu_reports.errors import ValidationError
from sbu_reports.reports.store import TicketStore

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = "issue_type, title, and description are required."
SUBMITTED_MESSAGE = "Report submitted successfully"


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def utc_timestamp() -> str:
    """Current time as ISO-8601 UTC with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def submit_report(
    store: TicketStore,
    payload: Union[ReportCreate, Mapping[str, Any], None],
) -> ReportCreated:
    """Validate a new report, store it and return it with a confirmation message."""
    if isinstance(payload, ReportCreate):
        payload = payload.model_dump()
    payload = payload or {}

    issue_type = _clean(payload.get("issue_type"))
    title = _clean(payload.get("title"))
    description = _clean(payload.get("description"))

    if not issue_type or not title or not description:
        logger.info("Rejected report with missing fields")
        raise ValidationError(REQUIRED_FIELDS_MESSAGE)

    ticket = Ticket(
        ticket_id=store.next_ticket_id(),
        issue_type=issue_type,
        title=title,
        description=description,
        location=_clean(payload.get("location")) or None,
        status=TicketStatus.PENDING_REVIEW,
        created_at=utc_timestamp(),
    )
    store.append(ticket)
    logger.info("Created ticket %s (%s)", ticket.ticket_id, ticket.issue_type)

    return ReportCreated(message=SUBMITTED_MESSAGE, report=ticket)


def parse_positive_int(value: Any, default: int) -> int:
    """Read a query value as a positive int, falling back to default."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value > 0 else default
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def list_reports(store: TicketStore, page: Optional[Any] = None, limit: Optional[Any] = None) -> ReportPage:
    """One page of tickets with pagination totals."""
    page = parse_positive_int(page, 1)
    limit = parse_positive_int(limit, DEFAULT_PAGE_SIZE)

    total = store.count()
    return ReportPage(
        data=store.page(page, limit),
        pagination=Pagination(
            total_results=total,
            total_pages=math.ceil(total / limit),
            current_page=page,
        ),
    )
