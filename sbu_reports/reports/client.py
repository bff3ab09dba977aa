"""
Report API client: listing, client-side filtering and flagged-message submission.
"""
import logging
import math
import random
import string
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

import httpx
from pydantic import BaseModel

from sbu_reports.config import REPORT_API_URL, REPORT_TIMEOUT, TICKET_ID_PREFIX
from sbu_reports.api.schemas import Ticket, TicketStatus
from sbu_reports.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 140
DEFAULT_FLAGGED_TITLE = "Suspicious report submitted from chatbot"
ALL_STATUSES = "all"


class ReportListing(BaseModel):
    """A fetched page of reports plus pagination numbers."""
    reports: List[Ticket]
    total_results: int
    total_pages: int
    current_page: int


class ReportReceipt(BaseModel):
    """What the submitter sees after filing a report."""
    ticket_id: str
    issue_type: str
    timestamp: str


def generate_ticket_id(prefix: str = TICKET_ID_PREFIX, now: Optional[datetime] = None) -> str:
    """Client-side fallback id: PREFIX-YYYYMMDD-XXXX."""
    now = now or datetime.now()
    alphabet = string.ascii_uppercase + string.digits
    suffix = "".join(random.choices(alphabet, k=4))
    return f"{prefix}-{now:%Y%m%d}-{suffix}"


def _read_string(item: dict, keys: Iterable[str], fallback: str = "") -> str:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return fallback


def _read_count(pagination: dict, key: str, fallback: int) -> int:
    value = pagination.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return fallback
    return value


def normalize_report(item: Any) -> Optional[Ticket]:
    """Build a Ticket from a loosely-shaped record. Returns None without a ticket id."""
    if not isinstance(item, dict):
        return None

    ticket_id = _read_string(item, ["ticket_id", "ticketId", "TicketID"])
    if not ticket_id:
        return None

    status = _read_string(item, ["status", "Status"], TicketStatus.PENDING_REVIEW.value)
    try:
        status = TicketStatus(status)
    except ValueError:
        logger.warning("Unknown status %r on %s, keeping it as-is", status, ticket_id)

    return Ticket(
        ticket_id=ticket_id,
        issue_type=_read_string(item, ["issue_type", "issueType", "IssueType"]),
        title=_read_string(item, ["title", "Title"], "Untitled Report"),
        description=_read_string(item, ["description", "Description"]),
        location=_read_string(item, ["location", "Location", "site"]) or None,
        status=status,
        created_at=_read_string(
            item,
            ["created_at", "createdAt", "dateSubmitted", "DateSubmitted"],
            datetime.now(timezone.utc).isoformat(),
        ),
    )


def filter_reports(reports: Iterable[Ticket], search: str = "", status: Optional[str] = None) -> List[Ticket]:
    """Filter already-fetched reports by free-text search and status.

    Only sees the reports passed in, i.e. the current page.
    """
    needle = (search or "").strip().lower()
    wanted = None if status in (None, "", ALL_STATUSES) else status

    matches = []
    for report in reports:
        # str-valued enum, so this also matches raw upstream statuses
        if wanted is not None and report.status != wanted:
            continue
        if needle:
            haystack = f"{report.ticket_id} {report.issue_type} {report.title} {report.description}".lower()
            if needle not in haystack:
                continue
        matches.append(report)
    return matches


def build_page_numbers(total_pages: int, current_page: int) -> List[int]:
    """Page numbers for a compact pager."""
    if total_pages <= 6:
        return list(range(1, total_pages + 1))

    pages = {1, total_pages}
    pages.update(p for p in (current_page - 1, current_page, current_page + 1) if 1 < p < total_pages)
    if current_page - 2 > 1:
        pages.add(current_page - 2)
    if current_page + 2 < total_pages:
        pages.add(current_page + 2)
    return sorted(pages)


class ReportApiClient:
    """HTTP client for the report API."""

    def __init__(self, url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = REPORT_API_URL if url is None else url
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=REPORT_TIMEOUT, transport=self.transport)

    def _require_url(self) -> None:
        if not self.url:
            raise UpstreamError("Report API endpoint is not configured. Please set REPORT_API_URL.")

    async def fetch_reports(self, page: int = 1, limit: int = 10) -> ReportListing:
        """Fetch and normalize one page of reports."""
        self._require_url()
        try:
            async with self._client() as client:
                response = await client.get(self.url, params={"page": page, "limit": limit})
        except httpx.HTTPError as e:
            logger.error("Failed to load reports: %s", e, exc_info=True)
            raise UpstreamError(f"Failed to load reports: {e}") from e

        if response.is_error:
            raise UpstreamError(f"Failed to load reports ({response.status_code})", response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError("Report API returned invalid JSON", response.status_code) from e
        if not isinstance(payload, dict):
            payload = {}

        items = payload.get("data")
        if not isinstance(items, list):
            items = []
        reports = [r for r in (normalize_report(item) for item in items) if r is not None]

        pagination = payload.get("pagination")
        if not isinstance(pagination, dict):
            pagination = {}

        return ReportListing(
            reports=reports,
            total_results=_read_count(pagination, "totalResults", len(reports)),
            total_pages=_read_count(pagination, "totalPages", max(1, math.ceil(len(reports) / limit))),
            current_page=_read_count(pagination, "currentPage", page),
        )

    async def submit_flagged_report(
        self,
        issue_type: Optional[str],
        flagged_message: str,
        details: str,
        location: Optional[str] = None,
    ) -> ReportReceipt:
        """File a report about a flagged message."""
        issue_type = (issue_type or "").strip()
        details = (details or "").strip()
        if not issue_type or not details:
            raise ValidationError("Choose an issue type and describe what happened.")
        self._require_url()

        flagged_message = (flagged_message or "").strip()
        title = flagged_message[:TITLE_MAX_LENGTH] if flagged_message else DEFAULT_FLAGGED_TITLE
        payload = {
            "issue_type": issue_type,
            "title": title,
            "description": details,
            "location": location,
        }

        try:
            async with self._client() as client:
                response = await client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            logger.error("Report submission failed: %s", e, exc_info=True)
            raise UpstreamError(f"Failed to submit the report: {e}") from e

        if response.is_error:
            body = response.text.strip()
            raise UpstreamError(
                body or f"Report submission failed with status {response.status_code}",
                response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        report = data.get("report", data) if isinstance(data, dict) else {}
        if not isinstance(report, dict):
            report = {}

        return ReportReceipt(
            ticket_id=_read_string(report, ["ticket_id"]) or generate_ticket_id(),
            issue_type=issue_type,
            timestamp=_read_string(report, ["created_at"]) or datetime.now().isoformat(timespec="seconds"),
        )
