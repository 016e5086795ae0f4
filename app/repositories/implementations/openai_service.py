import asyncio
from typing import Optional

import openai
from openai import OpenAI
import structlog

from app.config.settings import settings
from app.core.errors import InvalidCredentials, RateLimited, UpstreamUnavailable
from app.repositories.interfaces.ai_service import IAIProvider

logger = structlog.get_logger()


class OpenAIService(IAIProvider):
    """OpenAI chat completions implementation of an AI provider"""

    name = "openai"

    def __init__(self, api_key: Optional[str] = None, client: Optional[OpenAI] = None):
        self.client = client or OpenAI(
            base_url=settings.openai_base_url,
            api_key=api_key or settings.openai_api_key,
        )
        self.model = settings.openai_model

    async def complete(self, prompt: str, system_prompt: str) -> str:
        """Call chat.completions.create (async wrapper around the sync client)"""
        def sync_call():
            response = self.client.chat.completions.create(
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=settings.ai_max_output_tokens,
                temperature=settings.ai_temperature,
                model=self.model,
            )
            if not response.choices:
                return ""
            return response.choices[0].message.content or ""

        try:
            return await asyncio.get_event_loop().run_in_executor(None, sync_call)
        except openai.AuthenticationError as e:
            logger.error("OpenAI rejected credentials", status_code=e.status_code)
            raise InvalidCredentials("Invalid OpenAI API key")
        except openai.RateLimitError as e:
            logger.warning("OpenAI rate limit exceeded", status_code=e.status_code)
            raise RateLimited("OpenAI API rate limit exceeded")
        except openai.APIStatusError as e:
            logger.error("OpenAI request failed", status_code=e.status_code, error=str(e))
            raise UpstreamUnavailable("OpenAI API request failed")
        except openai.APIError as e:
            # Connection errors and timeouts carry no status code
            logger.error("OpenAI request failed", error=str(e))
            raise UpstreamUnavailable("OpenAI API request failed")
