from abc import ABC, abstractmethod


class IAIProvider(ABC):
    """Interface for a single LLM backend.

    Implementations raise ``InvalidCredentials``, ``RateLimited`` or
    ``UpstreamUnavailable`` from ``app.core.errors`` on failure.
    """

    name: str = "provider"

    @abstractmethod
    async def complete(self, prompt: str, system_prompt: str) -> str:
        """Send a prompt and return the model's raw text response"""
        pass
