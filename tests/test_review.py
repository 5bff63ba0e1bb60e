"""Tests for the AI review gateway."""

import json

import httpx
import pytest
import pytest_asyncio

from conftest import events_of, make_connection
from services.review import ReviewGateway, build_review_prompt, detect_language

FALLBACK = "Unable to review currently please try later"


def gemini_reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest_asyncio.fixture
async def room_members(sessions):
    a, b = make_connection("a"), make_connection("b")
    await sessions.join(a, "123", "A")
    await sessions.join(b, "123", "B")
    return a, b


class TestDetectLanguage:

    @pytest.mark.parametrize("code,expected", [
        ("#include <iostream>", "C++"),
        ("def main():\n    pass", "Python"),
        ("print(1)", "Python"),
        ("function f() {}", "JavaScript"),
        ("console.log(1)", "JavaScript"),
        ("public class Main {}", "Java"),
        ("System.out.println(1);", "Java"),
        ("SELECT 1;", "code"),
    ])
    def test_detect(self, code, expected):
        assert detect_language(code) == expected

    def test_first_match_wins(self):
        # A C++ file that mentions print( is still C++
        assert detect_language('#include <cstdio>\nint main(){ print("x"); }') == "C++"

    def test_prompt_embeds_language_and_code(self):
        prompt = build_review_prompt("print(42)")
        assert '"Python"' in prompt
        assert '"print(42)"' in prompt
        assert "bullets" in prompt


class TestReview:

    @pytest.mark.asyncio
    async def test_review_goes_to_whole_room(self, broadcaster, room_members):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=gemini_reply("- looks fine"))

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        gateway = ReviewGateway(broadcaster, client, api_key="k", model="gemini-test", api_url="https://gemini.test/v1beta/")
        text = await gateway.review("123", "print(1)")
        await client.aclose()

        assert text == "- looks fine"
        for conn in room_members:
            assert events_of(conn, "AIReview") == ["- looks fine"]
        assert seen[0].url.path == "/v1beta/models/gemini-test:generateContent"
        assert seen[0].url.params["key"] == "k"
        body = json.loads(seen[0].content)
        assert "print(1)" in body["contents"][0]["parts"][0]["text"]

    @pytest.mark.asyncio
    async def test_service_failure_broadcasts_fallback(self, broadcaster, room_members):
        def handler(request):
            return httpx.Response(500, json={"error": {"message": "boom"}})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        gateway = ReviewGateway(broadcaster, client, api_key="k")
        await gateway.review("123", "print(1)")
        await client.aclose()

        for conn in room_members:
            assert events_of(conn, "AIReview") == [FALLBACK]

    @pytest.mark.asyncio
    async def test_missing_api_key_broadcasts_fallback(self, broadcaster, room_members):
        def handler(request):
            raise AssertionError("no request expected")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        gateway = ReviewGateway(broadcaster, client, api_key=None)
        await gateway.review("123", "print(1)")
        await client.aclose()

        for conn in room_members:
            assert events_of(conn, "AIReview") == [FALLBACK]

    @pytest.mark.asyncio
    async def test_empty_completion_broadcasts_fallback(self, broadcaster, room_members):
        def handler(request):
            return httpx.Response(200, json={"candidates": []})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        gateway = ReviewGateway(broadcaster, client, api_key="k")
        await gateway.review("123", "x")
        await client.aclose()

        a, _ = room_members
        assert events_of(a, "AIReview") == [FALLBACK]
