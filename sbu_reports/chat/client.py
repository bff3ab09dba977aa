"""
Chat API client and request payload.
"""
import logging
from typing import Any, List, Optional

import httpx

from sbu_reports.config import CHAT_API_BASE_URL, CHAT_API_KEY, CHAT_AGENT, CHAT_TIMEOUT
from sbu_reports.errors import UpstreamError

logger = logging.getLogger(__name__)


def build_payload(user_input: str, last_turn: Optional[List[dict]] = None, agent: str = CHAT_AGENT) -> dict:
    """Request body for the agent endpoint."""
    return {
        "ntl": "",
        "agent": agent,
        "params": [
            {"name": "userInput", "value": user_input},
        ],
        "options": {
            "streaming": False,
            "llm": "",
            "user_id": "",
            "timeout": 600000,
            "temperatureMod": 1,
            "toppMod": 1,
            "freqpenaltyMod": 1,
            "minTokens": 0,
            "maxTokens": 10000,
            "lastTurn": last_turn or [],
            "returnVariables": False,
            "returnVariablesExpanded": False,
            "returnRender": False,
            "returnSource": True,
            "maxRecursion": 10,
        },
    }


class ChatApiClient:
    """Client for the external conversational endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        agent: str = CHAT_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (CHAT_API_BASE_URL if base_url is None else base_url).rstrip("/")
        self.api_key = CHAT_API_KEY if api_key is None else api_key
        self.agent = agent
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def send(self, user_input: str, last_turn: Optional[List[dict]] = None) -> Any:
        """Send one utterance and return the decoded JSON reply.

        Raises UpstreamError on transport failures, non-2xx statuses and
        bodies that are not JSON. There is no retry.
        """
        payload = build_payload(user_input, last_turn, self.agent)
        headers = {"apikey": self.api_key}

        try:
            async with httpx.AsyncClient(timeout=CHAT_TIMEOUT, transport=self.transport) as client:
                response = await client.post(f"{self.base_url}/maistro", json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Chat request failed: {e}") from e

        if response.is_error:
            raise UpstreamError(f"Request failed with status {response.status_code}", response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError("Chat API returned invalid JSON", response.status_code) from e

    async def health_check(self) -> bool:
        """Check if the chat endpoint is reachable."""
        if not self.configured:
            return False
        try:
            async with httpx.AsyncClient(timeout=5.0, transport=self.transport) as client:
                response = await client.get(self.base_url, headers={"apikey": self.api_key})
                return response.status_code < 500
        except httpx.HTTPError:
            logger.warning("Chat endpoint unreachable at %s", self.base_url)
            return False


chat_client = ChatApiClient()
