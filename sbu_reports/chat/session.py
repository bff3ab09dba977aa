"""
Chat turn orchestration: one outstanding request per conversation.
"""
import json
import logging
import uuid
from collections import OrderedDict
from typing import List, Optional, Tuple

from sbu_reports.config import CHAT_MAX_SESSIONS
from sbu_reports.api.schemas import ChatTurn
from sbu_reports.chat.client import ChatApiClient, chat_client
from sbu_reports.chat.resolver import resolve_text
from sbu_reports.errors import MalformedPayloadError, UpstreamError

logger = logging.getLogger(__name__)

GREETING = "Hi there! Welcome to the SBUH Helper. How can I help you today?"
EMPTY_REPLY = "The service returned an empty response."
FALLBACK_REPLY = "Sorry, I could not reach the assistant right now. Please try again in a moment."
BANNER_UPSTREAM = "Failed to fetch a response from the assistant."
BANNER_NOT_CONFIGURED = "Chat API endpoint is not configured. Please set CHAT_API_BASE_URL."


def build_last_turn(history: List[ChatTurn]) -> List[dict]:
    """Most recent (user, bot) exchange in history, as the agent's lastTurn list."""
    for i in range(len(history) - 1, 0, -1):
        if history[i].sender == "bot" and history[i - 1].sender == "user":
            return [{"input": history[i - 1].text, "response": history[i].text}]
    return []


def parse_bot_reply(text: str) -> Tuple[str, bool]:
    """Decode a {"response", "suspicious"} envelope from resolved reply text."""
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedPayloadError("Bot reply is not JSON") from e

    if not isinstance(parsed, dict) or not isinstance(parsed.get("response"), str):
        raise MalformedPayloadError("Bot reply has no response field")

    suspicious = parsed.get("suspicious", False)
    if isinstance(suspicious, str):
        suspicious = suspicious.strip().lower() == "true"
    return parsed["response"], bool(suspicious)


class ChatSession:
    """A conversation. Idle -> Waiting -> Idle; submits while waiting are dropped."""

    def __init__(self, client: Optional[ChatApiClient] = None, session_id: Optional[str] = None):
        self.client = client or chat_client
        self.session_id = session_id or uuid.uuid4().hex
        self.messages: List[ChatTurn] = [ChatTurn(sender="bot", text=GREETING)]
        self.waiting = False
        self.error: Optional[str] = None

    async def submit(self, text: str) -> Optional[ChatTurn]:
        """Send one utterance. Returns the bot turn, or None if nothing was sent."""
        text = (text or "").strip()
        if not text or self.waiting:
            return None

        if not self.client.configured:
            self.error = BANNER_NOT_CONFIGURED
            return None

        last_turn = build_last_turn(self.messages)
        self.messages.append(ChatTurn(sender="user", text=text))
        self.waiting = True

        try:
            data = await self.client.send(text, last_turn)
            reply = resolve_text(data) or EMPTY_REPLY
            suspicious = False
            try:
                reply, suspicious = parse_bot_reply(reply)
            except MalformedPayloadError:
                logger.debug("Bot reply is not JSON, showing it as plain text")
            turn = ChatTurn(sender="bot", text=reply or EMPTY_REPLY, is_suspicious=suspicious)
            self.error = None
        except UpstreamError as e:
            logger.error("Chat request failed for session %s: %s", self.session_id, e.message)
            turn = ChatTurn(sender="bot", text=FALLBACK_REPLY)
            self.error = BANNER_UPSTREAM
        finally:
            self.waiting = False

        self.messages.append(turn)
        return turn


class ChatSessionRegistry:
    """In-memory sessions keyed by id, least recently used evicted past max_sessions."""

    def __init__(self, client: Optional[ChatApiClient] = None, max_sessions: int = CHAT_MAX_SESSIONS):
        self.client = client
        self.max_sessions = max(1, max_sessions)
        self._sessions: "OrderedDict[str, ChatSession]" = OrderedDict()

    def get(self, session_id: str) -> Optional[ChatSession]:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
        return session

    def get_or_create(self, session_id: Optional[str] = None) -> ChatSession:
        """Known ids resume their session; anything else gets a new server-issued id."""
        session = self.get(session_id) if session_id else None
        if session is not None:
            return session

        session = ChatSession(self.client)
        self._sessions[session.session_id] = session
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.info("Evicted chat session %s", evicted)
        logger.info("Started chat session %s", session.session_id)
        return session

    def __len__(self) -> int:
        return len(self._sessions)


chat_sessions = ChatSessionRegistry()


def get_chat_sessions() -> ChatSessionRegistry:
    """FastAPI dependency for the shared session registry."""
    return chat_sessions
