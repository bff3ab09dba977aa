"""
Chat client and session tests.
"""
import asyncio
import json

import httpx
import pytest

from sbu_reports.api.schemas import ChatTurn
from sbu_reports.chat.client import ChatApiClient, build_payload
from sbu_reports.chat.session import (
    BANNER_NOT_CONFIGURED, BANNER_UPSTREAM, EMPTY_REPLY, FALLBACK_REPLY, GREETING,
    ChatSession, ChatSessionRegistry, build_last_turn, parse_bot_reply,
)
from sbu_reports.errors import MalformedPayloadError, UpstreamError


def make_client(handler) -> ChatApiClient:
    return ChatApiClient(base_url="http://chat.test/v1/demo", api_key="secret", transport=httpx.MockTransport(handler))


class TestPayload:

    # User input goes into params as userInput
    def test_build_payload(self):
        payload = build_payload("hello", agent="ChatBot2")
        assert payload["agent"] == "ChatBot2"
        assert payload["params"] == [{"name": "userInput", "value": "hello"}]
        assert payload["options"]["lastTurn"] == []

    # lastTurn is carried into options
    def test_build_payload_last_turn(self):
        turn = [{"input": "a", "response": "b"}]
        assert build_payload("x", turn)["options"]["lastTurn"] == turn


class TestChatApiClient:

    # Requests go to /maistro with the api key header
    @pytest.mark.asyncio
    async def test_send(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["apikey"] = request.headers.get("apikey")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"answer": "ok"})

        result = await make_client(handler).send("hi")
        assert result == {"answer": "ok"}
        assert seen["url"] == "http://chat.test/v1/demo/maistro"
        assert seen["apikey"] == "secret"
        assert seen["body"]["params"][0]["value"] == "hi"

    # Non-2xx statuses raise UpstreamError
    @pytest.mark.asyncio
    async def test_send_error_status(self):
        client = make_client(lambda request: httpx.Response(500))
        with pytest.raises(UpstreamError) as exc:
            await client.send("hi")
        assert exc.value.status_code == 500

    # Transport errors raise UpstreamError
    @pytest.mark.asyncio
    async def test_send_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        with pytest.raises(UpstreamError):
            await make_client(handler).send("hi")

    # Non-JSON bodies raise UpstreamError
    @pytest.mark.asyncio
    async def test_send_invalid_json(self):
        client = make_client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(UpstreamError):
            await client.send("hi")

    # Health check without a base URL is False
    @pytest.mark.asyncio
    async def test_health_check_unconfigured(self):
        assert await ChatApiClient(base_url="").health_check() is False

    # Health check should return boolean
    @pytest.mark.asyncio
    async def test_health_check(self):
        assert await make_client(lambda request: httpx.Response(200)).health_check() is True


class TestParseBotReply:

    # JSON envelopes are unpacked
    def test_envelope(self):
        assert parse_bot_reply('{"response": "hi", "suspicious": true}') == ("hi", True)

    # suspicious defaults to False
    def test_missing_suspicious(self):
        assert parse_bot_reply('{"response": "hi"}') == ("hi", False)

    # String flags are understood
    def test_string_flag(self):
        assert parse_bot_reply('{"response": "hi", "suspicious": "true"}') == ("hi", True)

    # Plain text is malformed
    def test_plain_text(self):
        with pytest.raises(MalformedPayloadError):
            parse_bot_reply("just words")

    # JSON without a response string is malformed
    def test_no_response(self):
        with pytest.raises(MalformedPayloadError):
            parse_bot_reply('{"other": 1}')


class TestBuildLastTurn:

    # Greeting alone has no exchange
    def test_greeting_only(self):
        assert build_last_turn([ChatTurn(sender="bot", text=GREETING)]) == []

    # Most recent user/bot pair is used
    def test_latest_pair(self):
        history = [
            ChatTurn(sender="bot", text=GREETING),
            ChatTurn(sender="user", text="q1"),
            ChatTurn(sender="bot", text="a1"),
            ChatTurn(sender="user", text="q2"),
            ChatTurn(sender="bot", text="a2"),
        ]
        assert build_last_turn(history) == [{"input": "q2", "response": "a2"}]


class TestChatSession:

    # New sessions start idle with a greeting
    def test_initial_state(self):
        session = ChatSession(make_client(lambda request: httpx.Response(200)))
        assert session.waiting is False
        assert [m.text for m in session.messages] == [GREETING]

    # Plain-text replies are shown as-is and not suspicious
    @pytest.mark.asyncio
    async def test_plain_reply(self):
        session = ChatSession(make_client(lambda request: httpx.Response(200, json={"answer": "Hello!"})))
        turn = await session.submit("hi")
        assert turn == ChatTurn(sender="bot", text="Hello!", is_suspicious=False)
        assert [m.sender for m in session.messages] == ["bot", "user", "bot"]
        assert session.waiting is False
        assert session.error is None

    # JSON replies carry the suspicious flag
    @pytest.mark.asyncio
    async def test_suspicious_reply(self):
        body = {"response": '{"response": "Report this", "suspicious": true}'}
        session = ChatSession(make_client(lambda request: httpx.Response(200, json=body)))
        turn = await session.submit("odd email")
        assert turn.text == "Report this"
        assert turn.is_suspicious is True

    # Empty replies get a placeholder
    @pytest.mark.asyncio
    async def test_empty_reply(self):
        session = ChatSession(make_client(lambda request: httpx.Response(200, json="")))
        turn = await session.submit("hi")
        assert turn.text == EMPTY_REPLY

    # Failures append the fallback turn and set a banner
    @pytest.mark.asyncio
    async def test_upstream_failure(self):
        session = ChatSession(make_client(lambda request: httpx.Response(502)))
        turn = await session.submit("hi")
        assert turn.text == FALLBACK_REPLY
        assert session.error == BANNER_UPSTREAM
        assert session.waiting is False

    # A later success clears the banner
    @pytest.mark.asyncio
    async def test_success_clears_error(self):
        responses = iter([httpx.Response(500), httpx.Response(200, json={"answer": "ok"})])
        session = ChatSession(make_client(lambda request: next(responses)))
        await session.submit("one")
        await session.submit("two")
        assert session.error is None

    # Blank input is ignored
    @pytest.mark.asyncio
    async def test_blank_input(self):
        session = ChatSession(make_client(lambda request: httpx.Response(200)))
        assert await session.submit("   ") is None
        assert len(session.messages) == 1

    # Unconfigured endpoint sets a banner and sends nothing
    @pytest.mark.asyncio
    async def test_not_configured(self):
        session = ChatSession(ChatApiClient(base_url=""))
        assert await session.submit("hi") is None
        assert session.error == BANNER_NOT_CONFIGURED
        assert len(session.messages) == 1

    # The previous exchange is sent as lastTurn
    @pytest.mark.asyncio
    async def test_last_turn_sent(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"answer": f"reply {len(bodies)}"})

        session = ChatSession(make_client(handler))
        await session.submit("first")
        await session.submit("second")
        assert bodies[0]["options"]["lastTurn"] == []
        assert bodies[1]["options"]["lastTurn"] == [{"input": "first", "response": "reply 1"}]

    # A submit while waiting is a no-op
    @pytest.mark.asyncio
    async def test_submit_while_waiting(self):
        release = asyncio.Event()

        async def handler(request):
            await release.wait()
            return httpx.Response(200, json={"answer": "done"})

        session = ChatSession(make_client(handler))
        task = asyncio.create_task(session.submit("first"))
        while not session.waiting:
            await asyncio.sleep(0)

        count = len(session.messages)
        assert await session.submit("second") is None
        assert len(session.messages) == count

        release.set()
        turn = await task
        assert turn.text == "done"
        assert session.waiting is False


class TestChatSessionRegistry:

    # Sessions are created once and found again by id
    def test_get_or_create(self):
        registry = ChatSessionRegistry(ChatApiClient(base_url=""))
        session = registry.get_or_create()
        assert registry.get_or_create(session.session_id) is session
        assert registry.get(session.session_id) is session
        assert len(registry) == 1

    # Unknown ids return None
    def test_get_unknown(self):
        assert ChatSessionRegistry().get("missing") is None

    # Registry size is capped, oldest sessions go first
    def test_bounded(self):
        registry = ChatSessionRegistry(ChatApiClient(base_url=""), max_sessions=50)
        first = registry.get_or_create()
        for i in range(200):
            registry.get_or_create(f"client-{i}")
        assert len(registry) == 50
        assert registry.get(first.session_id) is None

    # Recently used sessions survive eviction
    def test_recent_use_kept(self):
        registry = ChatSessionRegistry(ChatApiClient(base_url=""), max_sessions=2)
        kept = registry.get_or_create()
        registry.get_or_create()
        registry.get_or_create(kept.session_id)
        registry.get_or_create()
        assert registry.get(kept.session_id) is kept

    # Ids the server never issued get a fresh one
    def test_unknown_id_replaced(self):
        registry = ChatSessionRegistry(ChatApiClient(base_url=""))
        session = registry.get_or_create("made-up")
        assert session.session_id != "made-up"
        assert registry.get("made-up") is None
