import logging

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as google_auth_exceptions

from ...config import settings
from ...application.ports.ai_provider import AIProvider
from ...exceptions import UpstreamTimeout, UpstreamUnavailable

logger = logging.getLogger(__name__)


class GeminiProvider(AIProvider):
    def __init__(self, api_key: str = None, model_name: str = None, timeout_seconds: float = None) -> None:
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model_name = model_name or settings.GEMINI_MODEL
        self.timeout_seconds = timeout_seconds or settings.AI_TIMEOUT_SECONDS
        self.model = None
        if self.api_key:
            genai.configure(api_key=self.api_key)
            self.model = genai.GenerativeModel(self.model_name)

    def generate_text(self, prompt: str) -> str:
        if self.model is None:
            logger.error("Gemini call skipped: GEMINI_API_KEY is not configured")
            raise UpstreamUnavailable("AI service is not configured")

        try:
            result = self.model.generate_content(
                prompt,
                request_options={"timeout": self.timeout_seconds},
            )
        except (google_exceptions.DeadlineExceeded, TimeoutError) as e:
            logger.warning(f"Gemini ({self.model_name}) timed out after {self.timeout_seconds}s: {e}")
            raise UpstreamTimeout()
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Gemini ({self.model_name}) call failed: {e}")
            raise UpstreamUnavailable()
        except (google_auth_exceptions.TransportError, OSError) as e:
            # Connection resets, DNS failures and REST transport errors
            logger.error(f"Gemini ({self.model_name}) unreachable: {e}")
            raise UpstreamUnavailable()

        try:
            return result.text
        except ValueError as e:
            # Blocked or empty candidates carry no text part
            logger.error(f"Gemini returned no text: {e}")
            raise UpstreamUnavailable()
