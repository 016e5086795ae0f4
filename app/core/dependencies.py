from typing import List, Optional
from fastapi import Depends

from app.config.settings import settings
from app.repositories.interfaces.ai_service import IAIProvider
from app.repositories.interfaces.github_service import IGitHubService

from app.repositories.implementations.gemini_service import GeminiService
from app.repositories.implementations.github_service import GitHubRESTService
from app.repositories.implementations.openai_service import OpenAIService

from app.services.ai_service import AIService
from app.services.test_case_service import TestCaseService


class Container:
    """Dependency injection container"""

    def __init__(self):
        self._github_service: Optional[IGitHubService] = None
        self._ai_service: Optional[AIService] = None

    def ai_providers(self) -> List[IAIProvider]:
        """Providers in fallback order: OpenAI first when configured, then Gemini"""
        providers: List[IAIProvider] = []
        if settings.openai_api_key:
            providers.append(OpenAIService())
        if settings.gemini_api_key:
            providers.append(GeminiService())
        return providers

    def github_service(self) -> IGitHubService:
        """Get GitHub service instance (singleton)"""
        if self._github_service is None:
            self._github_service = GitHubRESTService()
        return self._github_service

    def ai_service(self) -> AIService:
        """Get AI gateway instance (singleton)"""
        if self._ai_service is None:
            self._ai_service = AIService(self.ai_providers())
        return self._ai_service


# Global container instance
container = Container()


# Dependency providers for FastAPI
def get_github_service() -> IGitHubService:
    """FastAPI dependency for GitHub service"""
    return container.github_service()


def get_ai_service() -> AIService:
    """FastAPI dependency for the AI gateway"""
    return container.ai_service()


def get_test_case_service(
    github_service: IGitHubService = Depends(get_github_service),
    ai_service: AIService = Depends(get_ai_service),
) -> TestCaseService:
    """FastAPI dependency for test case service"""
    return TestCaseService(github_service=github_service, ai_service=ai_service)
