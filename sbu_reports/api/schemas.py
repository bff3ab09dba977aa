"""
Request/response models.
"""
from enum import Enum
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class TicketStatus(str, Enum):
    """Review lifecycle. Only moves forward: pending -> in progress -> resolved."""
    PENDING_REVIEW = "Pending Review"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"


class Ticket(BaseModel):
    """A stored suspicious-activity report."""
    model_config = ConfigDict(frozen=True)

    ticket_id: str = Field(..., description="Unique ticket id", examples=["SBU-8395"])
    issue_type: str = Field(..., description="Issue category or free text", examples=["phishing"])
    title: str
    description: str
    location: Optional[str] = None
    # unknown upstream statuses are kept as plain strings
    status: Union[TicketStatus, str] = Field(default=TicketStatus.PENDING_REVIEW, union_mode="left_to_right")
    created_at: str = Field(..., description="ISO-8601 creation time")


class ReportCreate(BaseModel):
    """Input for POST /api/reports. Required fields are checked by the service for a 400."""
    issue_type: Optional[str] = Field(default=None, examples=["phishing"])
    title: Optional[str] = Field(default=None, examples=["Email asking for my password"])
    description: Optional[str] = Field(default=None)
    location: Optional[str] = Field(default=None)


class ReportCreated(BaseModel):
    message: str
    report: Ticket


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_results: int = Field(..., alias="totalResults")
    total_pages: int = Field(..., alias="totalPages")
    current_page: int = Field(..., alias="currentPage")


class ReportPage(BaseModel):
    data: List[Ticket] = Field(default_factory=list)
    pagination: Pagination


class MessageResponse(BaseModel):
    message: str


class ChatTurn(BaseModel):
    """One chat message kept in session memory."""
    sender: Literal["user", "bot"]
    text: str
    is_suspicious: bool = False


class ChatRequest(BaseModel):
    """Input for POST /api/chat."""
    message: str = Field(..., description="User utterance", examples=["I got a weird email from IT"])
    session_id: Optional[str] = Field(default=None, description="Omit to start a new conversation")


class ChatReply(BaseModel):
    session_id: str
    reply: Optional[ChatTurn] = None
    error: Optional[str] = None


class ChatSessionView(BaseModel):
    session_id: str
    waiting: bool
    error: Optional[str] = None
    messages: List[ChatTurn] = Field(default_factory=list)
