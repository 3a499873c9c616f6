"""
External Analysis Client

Sends an optimized image to a hosted chat-completion API (OpenRouter,
OpenAI-compatible) and returns the outcome.

Two protocol variants:
- DescribeClient: the model returns free-text restoration advice
- EditClient: the model returns the restored image (URL or base64 payload)

A single attempt is made per request; failures surface as
ExternalServiceError carrying the upstream status.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import httpx
from openai import (
    APIConnectionError,
    APIResponseValidationError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
)

from .config import RepairSettings
from .errors import ExternalServiceError
from .optimizer import OptimizedPayload

logger = logging.getLogger(__name__)

# ============================================
# Outcomes
# ============================================


@dataclass
class TextAdvice:
    """Restoration guidance only; the image is enhanced locally."""
    text: str

    @property
    def analysis(self) -> str:
        return self.text


@dataclass
class EditedImage:
    """A restored image produced by the external service."""
    data: bytes
    source_url: Optional[str] = None
    note: str = ""

    @property
    def analysis(self) -> str:
        return self.note


AnalysisOutcome = Union[TextAdvice, EditedImage]

# ============================================
# Prompts
# ============================================

DESCRIBE_SYSTEM_PROMPT = """You are an expert in photo restoration and enhancement. Your task is to:
1. Analyze the provided image for damage, fading, scratches, or quality issues
2. Provide detailed restoration recommendations
3. Describe what improvements can be made
4. Focus on color correction, noise reduction, sharpening, and damage repair

Please provide a comprehensive analysis and restoration plan for the image."""

DESCRIBE_USER_PROMPT = (
    "Please analyze this photo and provide a detailed restoration plan. "
    "What damage do you see and how would you fix it?"
)

EDIT_SYSTEM_PROMPT = (
    "You are an expert in photo restoration. Your task is to restore and enhance "
    "the provided image. Return ONLY the restored image as a base64 encoded string, "
    "without any text explanation."
)

EDIT_USER_PROMPT = "Restore this photo, fix any damage, enhance colors, and improve quality."

_DATA_URL = re.compile(r"data:image/[\w.+-]+;base64,([A-Za-z0-9+/=]+)")
_HTTP_URL = re.compile(r"https?://[^\s)\"'<>]+")
_CODE_FENCE = re.compile(r"^```[\w-]*\s*|\s*```$")


# ============================================
# Clients
# ============================================


class AnalysisClient:
    """
    Base client holding the OpenAI-compatible transport.

    Subclasses build the messages and interpret the response.
    """
    system_prompt: str = ""
    user_prompt: str = ""
    max_tokens: int = 1000
    temperature: float = 0.7
    image_detail: Optional[str] = None

    def __init__(
        self,
        settings: RepairSettings,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.model = settings.resolved_model
        self.http_client = http_client or httpx.AsyncClient(
            timeout=settings.request_timeout,
            follow_redirects=True,
        )
        self.openai_client = AsyncOpenAI(
            api_key=settings.api_key or "",
            base_url=settings.api_base_url,
            timeout=settings.request_timeout,
            max_retries=0,
            default_headers={
                "HTTP-Referer": settings.site_url,
                "X-Title": settings.app_title,
            },
            http_client=self.http_client,
        )

    async def close(self):
        """Close HTTP clients."""
        await self.openai_client.close()
        await self.http_client.aclose()

    def build_messages(self, payload: OptimizedPayload) -> List[Dict[str, Any]]:
        image_url: Dict[str, Any] = {"url": payload.to_data_url()}
        if self.image_detail:
            image_url["detail"] = self.image_detail
        return [
            {"role": "system", "content": self.system_prompt},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": self.user_prompt},
                    {"type": "image_url", "image_url": image_url},
                ],
            },
        ]

    async def _complete(self, payload: OptimizedPayload):
        """Issue one chat completion and return the first choice's message."""
        start_time = datetime.now()
        logger.info(f"[AnalysisClient] Calling {self.model} ({len(payload.data)} byte image)")
        try:
            response = await self.openai_client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(payload),
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except APITimeoutError as e:
            logger.error(f"[AnalysisClient] Timeout after {self.settings.request_timeout}s")
            raise ExternalServiceError(504, "Request to analysis service timed out") from e
        except APIConnectionError as e:
            logger.error(f"[AnalysisClient] Connection error: {e}")
            raise ExternalServiceError(502, f"Could not reach analysis service: {e}") from e
        except APIStatusError as e:
            logger.error(f"[AnalysisClient] HTTP error {e.status_code}: {e.message}")
            raise ExternalServiceError(e.status_code, e.message) from e
        except (APIResponseValidationError, ValueError) as e:
            # Body could not be decoded as a chat completion
            logger.error(f"[AnalysisClient] Unparseable response: {e}")
            raise ExternalServiceError(502, "Invalid API response format") from e

        choices = getattr(response, "choices", None)
        message = getattr(choices[0], "message", None) if choices else None
        if message is None:
            raise ExternalServiceError(502, "Invalid API response format")

        logger.info(f"[AnalysisClient] Response received in {datetime.now() - start_time}")
        return message

    async def analyze(self, payload: OptimizedPayload) -> AnalysisOutcome:
        raise NotImplementedError


class DescribeClient(AnalysisClient):
    """Describe-and-advise: returns a textual restoration plan."""
    system_prompt = DESCRIBE_SYSTEM_PROMPT
    user_prompt = DESCRIBE_USER_PROMPT
    max_tokens = 1000

    async def analyze(self, payload: OptimizedPayload) -> TextAdvice:
        message = await self._complete(payload)
        content = message.content
        if not isinstance(content, str) or not content.strip():
            raise ExternalServiceError(502, "Analysis service returned no text")
        return TextAdvice(text=content)


class EditClient(AnalysisClient):
    """Edit-and-return: returns the restored image itself."""
    system_prompt = EDIT_SYSTEM_PROMPT
    user_prompt = EDIT_USER_PROMPT
    max_tokens = 4096
    image_detail = "high"

    async def analyze(self, payload: OptimizedPayload) -> EditedImage:
        message = await self._complete(payload)
        content = message.content if isinstance(message.content, str) else ""

        reference = self._image_reference(message, content)
        if reference is None:
            raise ExternalServiceError(502, "Analysis service returned no edited image")

        if reference.startswith("data:"):
            found = _DATA_URL.match(reference)
            if found is None:
                raise ExternalServiceError(502, "Analysis service returned an unsupported data URL")
            return EditedImage(data=self._decode_base64(found.group(1)), note=self._note(content))
        if _HTTP_URL.fullmatch(reference):
            data = await self._download(reference)
            return EditedImage(data=data, source_url=reference, note=self._note(content))
        return EditedImage(data=self._decode_base64(reference))

    def _image_reference(self, message: Any, content: str) -> Optional[str]:
        """Locate the edited image: message.images first, then the text content."""
        for item in getattr(message, "images", None) or []:
            image_url = item.get("image_url") if isinstance(item, dict) else getattr(item, "image_url", None)
            url = image_url.get("url") if isinstance(image_url, dict) else getattr(image_url, "url", None)
            if url:
                return url

        found = _DATA_URL.search(content)
        if found:
            return found.group(0)

        # A URL only counts when it is the whole reply, not a link inside prose
        bare = _CODE_FENCE.sub("", content.strip())
        return bare or None

    @staticmethod
    def _note(content: str) -> str:
        """Text left over once any image reference is removed."""
        text = _HTTP_URL.sub("", _DATA_URL.sub("", content))
        return text.strip()

    @staticmethod
    def _decode_base64(encoded: str) -> bytes:
        try:
            data = base64.b64decode("".join(encoded.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ExternalServiceError(502, "Analysis service returned an undecodable image") from e
        if not data:
            raise ExternalServiceError(502, "Analysis service returned an empty image")
        return data

    async def _download(self, url: str) -> bytes:
        logger.info(f"[AnalysisClient] Downloading edited image: {url[:80]}...")
        try:
            response = await self.http_client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ExternalServiceError(504, "Edited image download timed out") from e
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                e.response.status_code,
                f"Failed to download edited image: {e.response.status_code}",
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(502, f"Failed to download edited image: {e}") from e
        return response.content


def create_analysis_client(
    settings: RepairSettings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AnalysisClient:
    """Pick the client variant configured by settings.analysis_mode."""
    if settings.analysis_mode == "edit":
        return EditClient(settings, http_client=http_client)
    return DescribeClient(settings, http_client=http_client)
