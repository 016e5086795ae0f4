import asyncio
from typing import Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
import structlog

from app.config.settings import settings
from app.core.errors import InvalidCredentials, RateLimited, UpstreamUnavailable
from app.repositories.interfaces.ai_service import IAIProvider

logger = structlog.get_logger()


class GeminiService(IAIProvider):
    """Google Gemini implementation of an AI provider."""

    name = "gemini"

    def __init__(self, api_key: Optional[str] = None, model: Optional[genai.GenerativeModel] = None) -> None:
        if model is None:
            genai.configure(api_key=api_key or settings.gemini_api_key)
            model = genai.GenerativeModel(settings.gemini_model)
        self.model = model

    async def complete(self, prompt: str, system_prompt: str) -> str:
        def sync_call():
            response = self.model.generate_content(
                f"{system_prompt}\n\n{prompt}",
                generation_config=genai.types.GenerationConfig(
                    max_output_tokens=settings.ai_max_output_tokens,
                    temperature=settings.ai_temperature,
                ),
            )
            return getattr(response, "text", None) or ""

        try:
            return await asyncio.get_event_loop().run_in_executor(None, sync_call)
        except (google_exceptions.Unauthenticated, google_exceptions.PermissionDenied) as e:
            logger.error("Gemini rejected credentials", error=str(e))
            raise InvalidCredentials("Invalid Gemini API key")
        except google_exceptions.InvalidArgument as e:
            # An unknown API key is reported as 400 API_KEY_INVALID
            if "API_KEY_INVALID" in str(e) or "API key not valid" in str(e):
                logger.error("Gemini rejected credentials", error=str(e))
                raise InvalidCredentials("Invalid Gemini API key")
            logger.error("Gemini request failed", error=str(e))
            raise UpstreamUnavailable("Gemini API request failed")
        except (google_exceptions.ResourceExhausted, google_exceptions.TooManyRequests) as e:
            logger.warning("Gemini rate limit exceeded", error=str(e))
            raise RateLimited("Gemini API rate limit exceeded")
        except google_exceptions.GoogleAPIError as e:
            logger.error("Gemini request failed", error=str(e))
            raise UpstreamUnavailable("Gemini API request failed")
        except ValueError as e:
            # response.text raises when the candidate was blocked or empty
            logger.error("Gemini returned no usable text", error=str(e))
            raise UpstreamUnavailable("Gemini API returned no content")
