import asyncio
import base64
import binascii
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
import structlog

from app.config.settings import settings
from app.core.errors import (
    AppError,
    GitHubAuthError,
    PermissionDeniedError,
    UpstreamConflict,
    UpstreamNotFound,
    UpstreamRateLimited,
    UpstreamUnavailable,
    ValidationError,
    error_for_status,
)
from app.models.schemas import FileFetchResult, GitHubFile, RepositoryPage
from app.repositories.interfaces.github_service import IGitHubService

logger = structlog.get_logger()

GITHUB_MEDIA_TYPE = "application/vnd.github.v3+json"


class GitHubRESTService(IGitHubService):
    """GitHub REST v3 implementation of the GitHub service"""

    def __init__(
        self,
        api_url: Optional[str] = None,
        oauth_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = (api_url or settings.github_api_url).rstrip("/")
        self.oauth_url = (oauth_url or settings.github_oauth_url).rstrip("/")
        self.client_id = client_id or settings.github_client_id
        self.client_secret = client_secret or settings.github_client_secret
        # Tests inject an httpx.MockTransport here
        self._transport = transport

    def _client(self, access_token: Optional[str] = None) -> httpx.AsyncClient:
        headers = {"Accept": GITHUB_MEDIA_TYPE}
        if access_token:
            headers["Authorization"] = f"token {access_token}"
        return httpx.AsyncClient(base_url=self.api_url, headers=headers, transport=self._transport)

    async def _request(
        self,
        method: str,
        url: str,
        access_token: str,
        action: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            async with self._client(access_token) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("GitHub request failed", action=action, url=url, error=str(e))
            raise UpstreamUnavailable(f"Failed to {action}: GitHub is unreachable")

        if response.is_error:
            error = self._translate_error(response, action)
            logger.error(
                "GitHub API error",
                action=action,
                url=url,
                status_code=response.status_code,
                error=error.message,
            )
            raise error
        return response

    def _translate_error(self, response: httpx.Response, action: str) -> AppError:
        status_code = response.status_code
        github_message = None
        try:
            body = response.json()
            if isinstance(body, dict):
                github_message = body.get("message")
        except ValueError:
            pass

        if status_code == 401:
            return GitHubAuthError("Invalid GitHub access token")
        if status_code == 403:
            if response.headers.get("x-ratelimit-remaining") == "0":
                return UpstreamRateLimited("GitHub API rate limit exceeded")
            return PermissionDeniedError(f"Insufficient permissions to {action}")
        if status_code == 404:
            return UpstreamNotFound(f"Failed to {action}: repository or path not found")
        if status_code in (409, 422):
            return UpstreamConflict(f"Failed to {action}: {github_message or 'validation failed'}")
        if status_code == 429:
            return UpstreamRateLimited("GitHub API rate limit exceeded")
        return error_for_status(status_code, f"Failed to {action}: {github_message or response.reason_phrase}")

    async def exchange_code_for_token(self, code: str) -> str:
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    f"{self.oauth_url}/access_token",
                    json={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                    },
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error("GitHub OAuth exchange failed", error=str(e))
            raise UpstreamUnavailable("Failed to exchange code for token: GitHub is unreachable")

        if response.is_error:
            logger.error("GitHub OAuth exchange rejected", status_code=response.status_code)
            raise ValidationError("Failed to exchange code for token")

        data = response.json()
        if data.get("error"):
            raise ValidationError(f"GitHub OAuth error: {data.get('error_description') or data['error']}")
        access_token = data.get("access_token")
        if not access_token:
            raise ValidationError("GitHub OAuth response did not include an access token")
        return access_token

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        response = await self._request("GET", "/user", access_token, "get user information")
        return response.json()

    async def get_user_repositories(self, access_token: str, page: int = 1, per_page: int = 30) -> RepositoryPage:
        response = await self._request(
            "GET",
            "/user/repos",
            access_token,
            "get repositories",
            params={"page": page, "per_page": per_page, "sort": "updated", "direction": "desc"},
        )
        repositories = response.json()
        if response.headers.get("link"):
            has_next_page = "next" in response.links
        else:
            has_next_page = len(repositories) == per_page
        return RepositoryPage(
            repositories=repositories,
            total_count=int(response.headers.get("x-total-count", len(repositories))),
            has_next_page=has_next_page,
        )

    async def get_repository_contents(self, access_token: str, owner: str, repo: str, path: str = "") -> List[Dict[str, Any]]:
        response = await self._request(
            "GET",
            self._contents_url(owner, repo, path),
            access_token,
            "get repository contents",
        )
        contents = response.json()
        if not isinstance(contents, list):
            raise ValidationError("Path is not a directory")
        return contents

    async def get_file_content(self, access_token: str, owner: str, repo: str, path: str) -> GitHubFile:
        response = await self._request(
            "GET",
            self._contents_url(owner, repo, path),
            access_token,
            f"get file {path}",
        )
        data = response.json()
        if not isinstance(data, dict) or data.get("type") != "file":
            raise ValidationError("Path is not a file")
        if data.get("encoding") == "none":
            raise ValidationError("File is too large to fetch through the contents API")

        try:
            content = base64.b64decode(data.get("content") or "").decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            raise ValidationError("File is not UTF-8 text")

        return GitHubFile(
            name=data["name"],
            path=data["path"],
            content=content,
            size=data.get("size", 0),
            sha=data.get("sha"),
        )

    async def get_multiple_file_contents(self, access_token: str, owner: str, repo: str, file_paths: List[str]) -> List[FileFetchResult]:
        outcomes = await asyncio.gather(
            *(self.get_file_content(access_token, owner, repo, path) for path in file_paths),
            return_exceptions=True,
        )

        results: List[FileFetchResult] = []
        for path, outcome in zip(file_paths, outcomes):
            if isinstance(outcome, GitHubFile):
                results.append(FileFetchResult(path=path, success=True, data=outcome))
                continue
            message = outcome.message if isinstance(outcome, AppError) else str(outcome)
            if not isinstance(outcome, AppError):
                logger.error("Unexpected error fetching file", path=path, error=message)
            results.append(FileFetchResult(path=path, success=False, error=message))
        return results

    async def get_default_branch(self, access_token: str, owner: str, repo: str) -> str:
        response = await self._request("GET", f"/repos/{owner}/{repo}", access_token, "get repository")
        return response.json().get("default_branch") or "main"

    async def _resolve_base_branch(self, access_token: str, owner: str, repo: str) -> str:
        try:
            return await self.get_default_branch(access_token, owner, repo)
        except AppError as e:
            logger.warning("Could not get default branch, using main", owner=owner, repo=repo, error=e.message)
            return "main"

    async def create_branch(self, access_token: str, owner: str, repo: str, branch_name: str, from_branch: Optional[str] = None) -> Dict[str, Any]:
        base = from_branch or await self._resolve_base_branch(access_token, owner, repo)

        ref_response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/git/ref/heads/{quote(base, safe='/')}",
            access_token,
            f"read branch {base}",
        )
        sha = ref_response.json()["object"]["sha"]

        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/git/refs",
            access_token,
            "create branch",
            json={"ref": f"refs/heads/{branch_name}", "sha": sha},
        )
        logger.info("Branch created", owner=owner, repo=repo, branch=branch_name, base=base)
        return response.json()

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
        payload: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            payload["sha"] = sha

        response = await self._request(
            "PUT",
            self._contents_url(owner, repo, path),
            access_token,
            f"create file {path}",
            json=payload,
        )
        return response.json()

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
        base = base or await self._resolve_base_branch(access_token, owner, repo)
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            access_token,
            "create pull request",
            json={"title": title, "body": body, "head": head, "base": base},
        )
        pull_request = response.json()
        logger.info(
            "Pull request created",
            owner=owner,
            repo=repo,
            number=pull_request.get("number"),
            head=head,
            base=base,
        )
        return pull_request

    @staticmethod
    def _contents_url(owner: str, repo: str, path: str) -> str:
        return f"/repos/{owner}/{repo}/contents/{quote(path.strip('/'), safe='/')}"
