from fastapi import APIRouter, Depends, Query
import structlog

from app.core.dependencies import get_github_service
from app.core.errors import ValidationError
from app.core.security import get_current_user
from app.core.utils import MAX_FILES_PER_FETCH, filter_code_files, is_text_file, is_valid_branch_name
from app.models.schemas import (
    AccessTokenRequest,
    BatchSummary,
    BranchInfo,
    BranchResponse,
    CommitInfo,
    CommittedFile,
    ContentsResponse,
    CreateBranchRequest,
    CreateFileRequest,
    CreateFileResponse,
    CreatePullRequestRequest,
    FileEntry,
    FileContentResponse,
    FolderEntry,
    MultipleFilesRequest,
    MultipleFilesResponse,
    Pagination,
    PathError,
    PullRequestDetail,
    PullRequestResponse,
    Repository,
    RepositoryListResponse,
)
from app.repositories.interfaces.github_service import IGitHubService

logger = structlog.get_logger()

router = APIRouter(prefix="/github", tags=["github"], dependencies=[Depends(get_current_user)])


@router.post("/repositories", response_model=RepositoryListResponse)
async def get_repositories(
    request: AccessTokenRequest,
    page: int = Query(1, ge=1),
    per_page: int = Query(30, ge=1, le=100),
    exclude_forks: bool = Query(False),
    github_service: IGitHubService = Depends(get_github_service),
):
    """List the user's repositories"""
    result = await github_service.get_user_repositories(request.access_token, page, per_page)

    repositories = result.repositories
    if exclude_forks:
        repositories = [repo for repo in repositories if not repo.get("fork")]

    return RepositoryListResponse(
        repositories=[Repository.from_github(repo) for repo in repositories],
        pagination=Pagination(
            page=page,
            per_page=per_page,
            total=result.total_count,
            has_next_page=result.has_next_page,
        ),
    )


@router.post("/{owner}/{repo}/contents", response_model=ContentsResponse)
async def get_repository_contents(
    owner: str,
    repo: str,
    request: AccessTokenRequest,
    path: str = Query(""),
    github_service: IGitHubService = Depends(get_github_service),
):
    """List folders and code files of a directory"""
    contents = await github_service.get_repository_contents(request.access_token, owner, repo, path)

    folders = [
        FolderEntry(name=item["name"], path=item["path"], type=item["type"], html_url=item.get("html_url"))
        for item in contents
        if item.get("type") == "dir"
    ]
    files = [item for item in contents if item.get("type") == "file"]
    code_files = [
        FileEntry(
            name=item["name"],
            path=item["path"],
            size=item.get("size", 0),
            type=item["type"],
            download_url=item.get("download_url"),
            html_url=item.get("html_url"),
            is_text_file=is_text_file(item["name"]),
        )
        for item in filter_code_files(files)
    ]

    return ContentsResponse(
        path=path or "/",
        folders=folders,
        files=code_files,
        total_files=len(files),
        total_code_files=len(code_files),
    )


@router.post("/{owner}/{repo}/file/{file_path:path}", response_model=FileContentResponse)
async def get_file_content(
    owner: str,
    repo: str,
    file_path: str,
    request: AccessTokenRequest,
    github_service: IGitHubService = Depends(get_github_service),
):
    if not file_path:
        raise ValidationError("Repository owner, name, and file path are required")
    file = await github_service.get_file_content(request.access_token, owner, repo, file_path)
    return FileContentResponse(file=file)


@router.post("/{owner}/{repo}/files", response_model=MultipleFilesResponse)
async def get_multiple_files(
    owner: str,
    repo: str,
    request: MultipleFilesRequest,
    github_service: IGitHubService = Depends(get_github_service),
):
    """Fetch several files at once; failures are reported per path"""
    if len(request.file_paths) > MAX_FILES_PER_FETCH:
        raise ValidationError(f"Maximum {MAX_FILES_PER_FETCH} files can be fetched at once")

    results = await github_service.get_multiple_file_contents(request.access_token, owner, repo, request.file_paths)
    files = [result.data for result in results if result.success and result.data]
    errors = [PathError(path=result.path, error=result.error or "Unknown error") for result in results if not result.success]
    logger.info("Fetched file batch", owner=owner, repo=repo, successful=len(files), failed=len(errors))

    return MultipleFilesResponse(
        files=files,
        errors=errors,
        summary=BatchSummary(total=len(request.file_paths), successful=len(files), failed=len(errors)),
    )


@router.post("/{owner}/{repo}/branch", response_model=BranchResponse)
async def create_branch(
    owner: str,
    repo: str,
    request: CreateBranchRequest,
    github_service: IGitHubService = Depends(get_github_service),
):
    if not is_valid_branch_name(request.branch_name):
        raise ValidationError("Invalid branch name format")

    branch = await github_service.create_branch(
        request.access_token, owner, repo, request.branch_name, request.from_branch
    )
    return BranchResponse(
        message="Branch created successfully",
        branch=BranchInfo(
            name=request.branch_name,
            ref=branch["ref"],
            sha=branch["object"]["sha"],
            url=branch.get("url"),
        ),
    )


@router.post("/{owner}/{repo}/create-file", response_model=CreateFileResponse)
async def create_file(
    owner: str,
    repo: str,
    request: CreateFileRequest,
    github_service: IGitHubService = Depends(get_github_service),
):
    result = await github_service.create_file(
        request.access_token,
        owner,
        repo,
        request.path,
        request.content,
        request.message,
        request.branch,
        request.sha,
    )
    content = result["content"]
    commit = result["commit"]
    return CreateFileResponse(
        message="File created successfully",
        file=CommittedFile(
            name=content["name"],
            path=content["path"],
            sha=content["sha"],
            size=content.get("size"),
            html_url=content.get("html_url"),
        ),
        commit=CommitInfo(sha=commit["sha"], message=commit.get("message"), html_url=commit.get("html_url")),
    )


@router.post("/{owner}/{repo}/pull-request", response_model=PullRequestResponse)
async def create_pull_request(
    owner: str,
    repo: str,
    request: CreatePullRequestRequest,
    github_service: IGitHubService = Depends(get_github_service),
):
    pull_request = await github_service.create_pull_request(
        request.access_token, owner, repo, request.title, request.body, request.head, request.base
    )
    return PullRequestResponse(
        message="Pull request created successfully",
        pull_request=PullRequestDetail.from_github(pull_request),
    )
