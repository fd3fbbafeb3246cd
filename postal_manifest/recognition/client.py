"""
Recognition Service Client Module.

HTTP transport for the label recognition service (Gemini
``generateContent`` REST endpoint). One image in, one JSON object out:

    {trackingId, recipientName, address, pincode, isValid}

Every failure leaves this module as a ``RecognitionServiceError`` with a
``FailureTag`` decided here, from the HTTP status or the kind of
connection failure. Callers never see aiohttp exceptions.

The aiohttp session is created lazily inside the running event loop, so
the client can be constructed from synchronous code.
"""

import asyncio
import json
from typing import Any, Dict, Optional, Protocol

import aiohttp

from postal_manifest.utils.logger import get_logger
from postal_manifest.utils.exceptions import FailureTag, RecognitionServiceError

logger = get_logger(__name__)


SYSTEM_INSTRUCTION = (
    "You are a master Indian Postal Sorter with superior pattern recognition. "
    "Extract: Tracking ID, Recipient Name, Full Address, and a 6-digit PIN. "
    "If characters are low-confidence due to blur, intelligently infer based on "
    "common Indian naming conventions and geography. Return 'N/A' only if "
    "completely unreadable. 'isValid' should be true if a plausible 6-digit PIN is found."
)

EXTRACTION_PROMPT = (
    "Extract data from this Indian postal label. If the image is blurry, use "
    "contextual knowledge of Indian geography (states, cities, districts) to "
    "correct OCR errors. Look for a 6-digit PIN code and verify it against the "
    "state mentioned in the address."
)

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "trackingId": {"type": "STRING"},
        "recipientName": {"type": "STRING"},
        "address": {"type": "STRING"},
        "pincode": {"type": "STRING"},
        "isValid": {"type": "BOOLEAN"},
    },
    "required": ["trackingId", "recipientName", "address", "pincode", "isValid"],
}

# HTTP status -> failure tag; anything else non-2xx is UNEXPECTED_STATUS
STATUS_TAGS = {
    400: FailureTag.BAD_REQUEST,
    401: FailureTag.UNAUTHORIZED,
    403: FailureTag.UNAUTHORIZED,
    429: FailureTag.RATE_LIMITED,
    500: FailureTag.SERVER_UNAVAILABLE,
    503: FailureTag.SERVER_UNAVAILABLE,
    504: FailureTag.SERVER_UNAVAILABLE,
}


def classify_status(status: int) -> FailureTag:
    """
    Map a non-2xx HTTP status onto a failure tag.

    Example:
        >>> classify_status(429)
        <FailureTag.RATE_LIMITED: 'RATE_LIMITED'>
    """
    return STATUS_TAGS.get(status, FailureTag.UNEXPECTED_STATUS)


class RecognitionTransport(Protocol):
    """Anything that can turn a base64 JPEG into raw label fields."""

    async def recognize(self, image_b64: str) -> Optional[Dict[str, Any]]:
        ...


class GeminiRecognitionClient:
    """
    aiohttp client for the Gemini ``generateContent`` endpoint.

    Attributes:
        api_key: Service credential.
        model: Model name, e.g. "gemini-2.0-flash".
        endpoint: API base URL, e.g. "https://generativelanguage.googleapis.com/v1beta".
        timeout: Total request timeout in seconds.
        temperature: Sampling temperature.

    Example:
        >>> async with GeminiRecognitionClient(api_key="...") as client:
        ...     fields = await client.recognize(image_b64)
    """

    DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"
    DEFAULT_MODEL = "gemini-2.0-flash"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 60.0,
        temperature: float = 0.1
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.endpoint = endpoint.rstrip('/')
        self.timeout = timeout
        self.temperature = temperature

        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def url(self) -> str:
        return f"{self.endpoint}/models/{self.model}:generateContent"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            logger.debug("Creating aiohttp ClientSession")
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session. Safe to call more than once."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> 'GeminiRecognitionClient':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def build_payload(self, image_b64: str) -> Dict[str, Any]:
        """Request body asking for the label fields as structured JSON."""
        return {
            "systemInstruction": {"parts": [{"text": SYSTEM_INSTRUCTION}]},
            "contents": [{
                "role": "user",
                "parts": [
                    {"inlineData": {"mimeType": "image/jpeg", "data": image_b64}},
                    {"text": EXTRACTION_PROMPT},
                ],
            }],
            "generationConfig": {
                "temperature": self.temperature,
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    async def recognize(self, image_b64: str) -> Optional[Dict[str, Any]]:
        """
        Send one image to the service.

        Args:
            image_b64: Base64-encoded JPEG.

        Returns:
            Parsed label fields, or None if the service returned no text.

        Raises:
            RecognitionServiceError: Tagged with the failure kind.
        """
        session = await self._ensure_session()
        headers = {"x-goog-api-key": self.api_key}

        try:
            async with session.post(self.url, json=self.build_payload(image_b64), headers=headers) as resp:
                body = await resp.text()
                if resp.status >= 300:
                    tag = classify_status(resp.status)
                    logger.debug(f"Recognition HTTP {resp.status}: {body[:200]}")
                    raise RecognitionServiceError(tag, body[:500], status_code=resp.status)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RecognitionServiceError(FailureTag.TRANSPORT, repr(e)) from e

        return self._parse_body(body)

    def _parse_body(self, body: str) -> Optional[Dict[str, Any]]:
        try:
            envelope = json.loads(body)
        except ValueError as e:
            raise RecognitionServiceError(FailureTag.MALFORMED_RESPONSE, f"envelope: {e}") from e

        text = self._response_text(envelope)
        if not text:
            logger.debug("Recognition response carried no text")
            return None

        try:
            fields = json.loads(text.strip())
        except ValueError as e:
            raise RecognitionServiceError(FailureTag.MALFORMED_RESPONSE, f"fields: {e}") from e

        if not isinstance(fields, dict):
            raise RecognitionServiceError(
                FailureTag.MALFORMED_RESPONSE,
                f"expected an object, got {type(fields).__name__}"
            )
        return fields

    @staticmethod
    def _response_text(envelope: Any) -> str:
        """Concatenated text parts of the first candidate."""
        try:
            parts = envelope["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            return ""
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))
