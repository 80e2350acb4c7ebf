"""Tests for the :mod:`kalasetu.adapters.ai` module."""

import asyncio
import json

import httpx
import pytest

from kalasetu.adapters.ai import AIToolsClient
from kalasetu.adapters.base import Session
from kalasetu.errors import BackendError, Timeout, ValidationError

SESSION = Session(user_id="uid-asha", token="TOKEN")


def client_for(handler) -> AIToolsClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AIToolsClient("https://api.example.com/api", client=client)


def test_generate_idea_returns_ideas() -> None:
    """Ideas come back as the provider sent them, with blank tags dropped."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/idea"
        assert json.loads(request.content) == {
            "skills": ["Woodworking"],
            "materials": ["Oak", "Walnut"],
        }
        return httpx.Response(200, json={"ideas": [{"title": "Phone stand"}]})

    ideas = asyncio.run(
        client_for(handler).generate_idea(SESSION, [" Woodworking "], ["Oak", "Walnut", " "])
    )
    assert ideas == [{"title": "Phone stand"}]


def test_generate_image_returns_url() -> None:
    """The mockup URL is read from the ``imageUrl`` field."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer TOKEN"
        assert json.loads(request.content) == {"description": "teak side table"}
        return httpx.Response(200, json={"imageUrl": "https://img.example.com/1.png"})

    url = asyncio.run(client_for(handler).generate_image(SESSION, "teak side table"))
    assert url == "https://img.example.com/1.png"


def test_speech_to_text_uploads_audio_field() -> None:
    """Audio is uploaded as a multipart ``audio`` field."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/speech-to-text"
        assert b'name="audio"' in request.content
        assert b"RIFF" in request.content
        return httpx.Response(200, json={"transcription": "namaste"})

    text = asyncio.run(
        client_for(handler).speech_to_text(SESSION, b"RIFF....", filename="clip.wav")
    )
    assert text == "namaste"


def test_text_to_speech_missing_field() -> None:
    """A reply without ``audioUrl`` is a backend error."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"url": "wrong-key"})

    with pytest.raises(BackendError):
        asyncio.run(client_for(handler).text_to_speech(SESSION, "Welcome to my stall"))


def test_non_json_reply_is_backend_error() -> None:
    """A provider that answers 200 with plain text raises a backend error."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="OK")

    with pytest.raises(BackendError):
        asyncio.run(client_for(handler).generate_image(SESSION, "brass lamp"))


@pytest.mark.parametrize(
    "call",
    [
        lambda c: c.generate_idea(SESSION, ["Weaving"], []),
        lambda c: c.generate_image(SESSION, "  "),
        lambda c: c.speech_to_text(SESSION, b""),
        lambda c: c.text_to_speech(SESSION, ""),
    ],
)
def test_blank_inputs_never_reach_the_provider(call) -> None:
    """Empty input is rejected before any request is made."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ValidationError):
        asyncio.run(call(client_for(handler)))


def test_provider_timeout() -> None:
    """A slow provider raises ``Timeout``."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("slow provider", request=request)

    with pytest.raises(Timeout):
        asyncio.run(client_for(handler).generate_image(SESSION, "brass lamp"))
