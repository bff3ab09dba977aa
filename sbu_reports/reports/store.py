"""
In-memory ticket store.
"""
import logging
import threading
from collections import deque
from itertools import islice
from typing import List, Optional

from sbu_reports.config import TICKET_ID_PREFIX, TICKET_ID_SEED, SEED_REPORTS
from sbu_reports.api.schemas import Ticket, TicketStatus

logger = logging.getLogger(__name__)


SEED_TICKETS = [
    Ticket(
        ticket_id="SBU-84393",
        issue_type="Suspicious Individual",
        title="Suspicious person near library entrance",
        description="Observed an individual acting suspiciously near the main library entrance around 2 PM.",
        status=TicketStatus.PENDING_REVIEW,
        created_at="2023-10-27 14:30:00",
    ),
    Ticket(
        ticket_id="SBU-84392",
        issue_type="Suspicious Individual",
        title="Person seen tailgating into secure lab",
        description="An individual followed a staff member through the secure lab doors without a badge.",
        status=TicketStatus.PENDING_REVIEW,
        created_at="2023-10-26 18:00:00",
    ),
]


class TicketStore:
    """Newest-first list of tickets. All access goes through one lock."""

    def __init__(self, tickets: Optional[List[Ticket]] = None, prefix: str = TICKET_ID_PREFIX,
                 seed: int = TICKET_ID_SEED):
        self._tickets = deque(tickets or [])
        self._ids = {t.ticket_id for t in self._tickets}
        self._prefix = prefix
        self._counter = seed
        self._lock = threading.Lock()

    @classmethod
    def with_demo_data(cls) -> "TicketStore":
        """Store pre-filled with the demo tickets."""
        return cls(SEED_TICKETS)

    def next_ticket_id(self) -> str:
        """Reserve the next sequential ticket id."""
        with self._lock:
            self._counter += 1
            return f"{self._prefix}-{self._counter}"

    def append(self, ticket: Ticket) -> None:
        """Insert a ticket at the front."""
        with self._lock:
            if ticket.ticket_id in self._ids:
                raise ValueError(f"Duplicate ticket id: {ticket.ticket_id}")
            self._ids.add(ticket.ticket_id)
            self._tickets.appendleft(ticket)
        logger.debug("Stored ticket %s", ticket.ticket_id)

    def page(self, page_number: int, page_size: int) -> List[Ticket]:
        """Return one page (1-based). Pages past the end are empty."""
        if page_number < 1 or page_size < 1:
            raise ValueError("page_number and page_size must be positive")
        start = (page_number - 1) * page_size
        with self._lock:
            return list(islice(self._tickets, start, start + page_size))

    def all(self) -> List[Ticket]:
        with self._lock:
            return list(self._tickets)

    def count(self) -> int:
        with self._lock:
            return len(self._tickets)

    def __len__(self) -> int:
        return self.count()


ticket_store = TicketStore.with_demo_data() if SEED_REPORTS else TicketStore()


def get_ticket_store() -> TicketStore:
    """FastAPI dependency for the shared store."""
    return ticket_store
