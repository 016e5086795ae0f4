import os

# Settings are read at import time, so the environment must be ready first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("GITHUB_CLIENT_ID", "test-client-id")
os.environ.setdefault("GITHUB_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("FRONTEND_URL", "http://localhost:3000")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from main import app
from app.core.dependencies import get_ai_service, get_github_service
from app.core.errors import UpstreamConflict, UpstreamNotFound
from app.core.security import create_access_token
from app.models.schemas import FileFetchResult, GitHubFile, RepositoryPage
from app.repositories.interfaces.ai_service import IAIProvider
from app.repositories.interfaces.github_service import IGitHubService
from app.services.ai_service import AIService


GITHUB_USER = {
    "id": 42,
    "login": "octocat",
    "email": "octocat@example.com",
    "name": "The Octocat",
    "avatar_url": "https://avatars.example.com/octocat.png",
    "public_repos": 8,
}


class FakeGitHubService(IGitHubService):
    """In-memory GitHub double recording every write"""

    def __init__(self):
        self.files: Dict[str, str] = {}
        self.failing_writes: set = set()
        self.branches: List[Dict[str, Any]] = []
        self.created_files: List[Dict[str, Any]] = []
        self.pull_requests: List[Dict[str, Any]] = []
        self.fetch_calls: List[str] = []

    async def exchange_code_for_token(self, code: str) -> str:
        return f"gho_{code}"

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        return dict(GITHUB_USER)

    async def get_user_repositories(self, access_token: str, page: int = 1, per_page: int = 30) -> RepositoryPage:
        repositories = [
            {"id": 1, "name": "app", "full_name": "octocat/app", "owner": {"login": "octocat"}, "fork": False},
            {"id": 2, "name": "fork", "full_name": "octocat/fork", "owner": {"login": "octocat"}, "fork": True},
        ]
        return RepositoryPage(repositories=repositories, total_count=2, has_next_page=False)

    async def get_repository_contents(self, access_token: str, owner: str, repo: str, path: str = "") -> List[Dict[str, Any]]:
        return [
            {"name": "src", "path": "src", "type": "dir"},
            {"name": "index.js", "path": "index.js", "type": "file", "size": 10},
            {"name": "logo.png", "path": "logo.png", "type": "file", "size": 500},
        ]

    async def get_file_content(self, access_token: str, owner: str, repo: str, path: str) -> GitHubFile:
        self.fetch_calls.append(path)
        if path not in self.files:
            raise UpstreamNotFound("Failed to get file: repository or path not found")
        content = self.files[path]
        return GitHubFile(name=path.rsplit("/", 1)[-1], path=path, content=content, size=len(content))

    async def get_multiple_file_contents(self, access_token: str, owner: str, repo: str, file_paths: List[str]) -> List[FileFetchResult]:
        results = []
        for path in file_paths:
            try:
                data = await self.get_file_content(access_token, owner, repo, path)
                results.append(FileFetchResult(path=path, success=True, data=data))
            except UpstreamNotFound as e:
                results.append(FileFetchResult(path=path, success=False, error=e.message))
        return results

    async def get_default_branch(self, access_token: str, owner: str, repo: str) -> str:
        return "main"

    async def create_branch(self, access_token: str, owner: str, repo: str, branch_name: str, from_branch: Optional[str] = None) -> Dict[str, Any]:
        self.branches.append({"name": branch_name, "from": from_branch})
        return {"ref": f"refs/heads/{branch_name}", "object": {"sha": "abc123"}, "url": None}

    async def create_file(self, access_token, owner, repo, path, content, message, branch="main", sha=None) -> Dict[str, Any]:
        if path in self.failing_writes:
            raise UpstreamConflict("Failed to create file: sha wasn't supplied")
        self.created_files.append({"path": path, "content": content, "branch": branch, "message": message})
        return {
            "content": {"name": path.rsplit("/", 1)[-1], "path": path, "sha": "f1", "html_url": f"https://github.com/{owner}/{repo}/blob/{branch}/{path}"},
            "commit": {"sha": "c1", "message": message},
        }

    async def create_pull_request(self, access_token, owner, repo, title, body, head, base=None) -> Dict[str, Any]:
        self.pull_requests.append({"title": title, "body": body, "head": head, "base": base})
        return {
            "id": 1000,
            "number": 7,
            "title": title,
            "body": body,
            "html_url": f"https://github.com/{owner}/{repo}/pull/7",
            "head": {"ref": head, "sha": "abc123"},
            "base": {"ref": base or "main", "sha": "def456"},
        }


class FakeAIProvider(IAIProvider):
    """Scripted provider: returns the next response, or raises `error` on every call
    and `failures[n]` on the n-th call (1-based)"""

    def __init__(self, name: str, responses=None, error: Optional[Exception] = None, failures: Optional[Dict[int, Exception]] = None):
        self.name = name
        self.responses = list(responses or [])
        self.error = error
        self.failures = dict(failures or {})
        self.prompts: List[str] = []

    async def complete(self, prompt: str, system_prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if len(self.prompts) in self.failures:
            raise self.failures[len(self.prompts)]
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


@pytest.fixture
def fake_github():
    return FakeGitHubService()


@pytest.fixture
def fake_provider():
    return FakeAIProvider("openai", responses=["```javascript\ntest('works', () => {});\n```"])


@pytest.fixture
def test_client(fake_github, fake_provider):
    """Synchronous test client with GitHub and the AI provider replaced by fakes"""
    app.dependency_overrides[get_github_service] = lambda: fake_github
    app.dependency_overrides[get_ai_service] = lambda: AIService([fake_provider])
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(GITHUB_USER)}"}


@pytest.fixture
def github_user():
    return dict(GITHUB_USER)


@pytest.fixture
def make_provider():
    """Factory for scripted AI providers"""
    return FakeAIProvider
