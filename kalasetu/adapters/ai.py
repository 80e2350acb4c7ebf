"""Async wrappers around the hosted AI tools.

The tools keep no state on our side: each call is a single request and
response, and a failure here never touches requests or conversations.
"""

from __future__ import annotations

from typing import Any

import httpx

from ..config import DEFAULT_TIMEOUT
from ..errors import BackendError, Timeout, ValidationError
from .base import Session
from .http import json_body, raise_for_status


class AIToolsClient:
    """Client for idea generation, image mockups and speech conversion."""

    def __init__(
        self,
        api_base: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.client = client or httpx.AsyncClient()
        self.timeout = timeout

    async def _post(self, session: Session, endpoint: str, **kwargs: Any) -> dict:
        headers = {"Authorization": f"Bearer {session.token}"} if session.token else {}
        try:
            response = await self.client.post(
                f"{self.api_base}{endpoint}",
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except httpx.TimeoutException as exc:
            raise Timeout(f"POST {endpoint} timed out after {self.timeout}s") from exc
        raise_for_status(response)
        data = json_body(response)
        if not isinstance(data, dict):
            raise BackendError(f"Unexpected response from {endpoint}: {data!r}")
        return data

    @staticmethod
    def _field(data: dict, key: str, endpoint: str) -> Any:
        if key not in data:
            raise BackendError(f"{endpoint} response has no {key!r}")
        return data[key]

    async def generate_idea(
        self, session: Session, skills: list[str], materials: list[str]
    ) -> list[dict]:
        """Product ideas for the given skills and materials.

        Each idea is returned as the provider sent it, typically with
        ``title``, ``description``, ``rationale``, ``difficulty`` and
        ``estimatedTime`` keys.
        """
        skills = [s.strip() for s in skills if s.strip()]
        materials = [m.strip() for m in materials if m.strip()]
        if not skills or not materials:
            raise ValidationError("Please provide both your skills and available materials.")
        data = await self._post(
            session, "/idea", json={"skills": skills, "materials": materials}
        )
        return list(data.get("ideas") or [])

    async def generate_image(self, session: Session, description: str) -> str:
        """Generate a product mockup and return its URL."""
        if not description or not description.strip():
            raise ValidationError("Please provide a product description.")
        data = await self._post(
            session, "/generate-image", json={"description": description.strip()}
        )
        return str(self._field(data, "imageUrl", "/generate-image"))

    async def speech_to_text(
        self,
        session: Session,
        audio: bytes,
        filename: str = "audio.webm",
        content_type: str = "application/octet-stream",
    ) -> str:
        if not audio:
            raise ValidationError("Please select an audio file.")
        data = await self._post(
            session,
            "/speech-to-text",
            files={"audio": (filename, audio, content_type)},
        )
        return str(self._field(data, "transcription", "/speech-to-text"))

    async def text_to_speech(self, session: Session, text: str) -> str:
        """Convert ``text`` to speech and return the audio URL."""
        if not text or not text.strip():
            raise ValidationError("Please enter text to convert to speech.")
        data = await self._post(session, "/text-to-speech", json={"text": text.strip()})
        return str(self._field(data, "audioUrl", "/text-to-speech"))

    async def close(self) -> None:
        await self.client.aclose()
