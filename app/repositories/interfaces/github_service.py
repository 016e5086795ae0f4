from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from app.models.schemas import FileFetchResult, GitHubFile, RepositoryPage


class IGitHubService(ABC):
    """Interface for GitHub REST API operations"""

    @abstractmethod
    async def exchange_code_for_token(self, code: str) -> str:
        """Exchange an OAuth authorization code for a user access token"""
        pass

    @abstractmethod
    async def get_user(self, access_token: str) -> Dict[str, Any]:
        """Get the authenticated user's profile"""
        pass

    @abstractmethod
    async def get_user_repositories(self, access_token: str, page: int = 1, per_page: int = 30) -> RepositoryPage:
        """List repositories of the authenticated user, most recently updated first"""
        pass

    @abstractmethod
    async def get_repository_contents(self, access_token: str, owner: str, repo: str, path: str = "") -> List[Dict[str, Any]]:
        """List the entries of a directory"""
        pass

    @abstractmethod
    async def get_file_content(self, access_token: str, owner: str, repo: str, path: str) -> GitHubFile:
        """Get a single file with its content decoded to text"""
        pass

    @abstractmethod
    async def get_multiple_file_contents(self, access_token: str, owner: str, repo: str, file_paths: List[str]) -> List[FileFetchResult]:
        """Fetch several files concurrently; one failure never aborts the batch"""
        pass

    @abstractmethod
    async def get_default_branch(self, access_token: str, owner: str, repo: str) -> str:
        """Get the repository's default branch name"""
        pass

    @abstractmethod
    async def create_branch(self, access_token: str, owner: str, repo: str, branch_name: str, from_branch: Optional[str] = None) -> Dict[str, Any]:
        """Create a branch pointing at the head commit of another branch"""
        pass

    @abstractmethod
    async def create_file(
        self,
        access_token: str,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        branch: str = "main",
        sha: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create or update a file on a branch"""
        pass

    @abstractmethod
    async def create_pull_request(
        self,
        access_token: str,
        owner: str,
        repo: str,
        title: str,
        body: str,
        head: str,
        base: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Open a pull request from head into base"""
        pass
