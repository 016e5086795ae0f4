from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any, Union
from datetime import datetime
from enum import Enum


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, accepting either form on input."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class TestType(str, Enum):
    UNIT = "unit"
    INTEGRATION = "integration"
    E2E = "e2e"
    PERFORMANCE = "performance"


class TestPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TestComplexity(str, Enum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


# ---------------------------------------------------------------------------
# Session / user
# ---------------------------------------------------------------------------

class SessionUser(CamelModel):
    id: int
    username: str
    email: Optional[str] = None
    avatar: Optional[str] = None


class GitHubUserProfile(CamelModel):
    id: int
    username: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    company: Optional[str] = None
    blog: Optional[str] = None
    public_repos: Optional[int] = None
    followers: Optional[int] = None
    following: Optional[int] = None
    created_at: Optional[str] = None
    access_token: str

    @classmethod
    def from_github(cls, data: Dict[str, Any], access_token: str) -> "GitHubUserProfile":
        return cls(
            id=data["id"],
            username=data["login"],
            email=data.get("email"),
            name=data.get("name"),
            avatar=data.get("avatar_url"),
            bio=data.get("bio"),
            location=data.get("location"),
            company=data.get("company"),
            blog=data.get("blog"),
            public_repos=data.get("public_repos"),
            followers=data.get("followers"),
            following=data.get("following"),
            created_at=data.get("created_at"),
            access_token=access_token,
        )


# ---------------------------------------------------------------------------
# Repositories and files
# ---------------------------------------------------------------------------

class RepositoryOwner(CamelModel):
    login: str
    avatar: Optional[str] = None


class Repository(CamelModel):
    id: int
    name: str
    full_name: str
    description: Optional[str] = None
    private: bool = False
    owner: RepositoryOwner
    html_url: Optional[str] = None
    language: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    size: int = 0
    default_branch: Optional[str] = None
    open_issues_count: int = 0
    has_issues: bool = False
    has_wiki: bool = False
    fork: bool = False
    archived: bool = False
    disabled: bool = False
    pushed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_github(cls, data: Dict[str, Any]) -> "Repository":
        owner = data.get("owner") or {}
        return cls(
            id=data["id"],
            name=data["name"],
            full_name=data.get("full_name", data["name"]),
            description=data.get("description"),
            private=data.get("private", False),
            owner=RepositoryOwner(login=owner.get("login", ""), avatar=owner.get("avatar_url")),
            html_url=data.get("html_url"),
            language=data.get("language"),
            stargazers_count=data.get("stargazers_count", 0),
            forks_count=data.get("forks_count", 0),
            size=data.get("size", 0),
            default_branch=data.get("default_branch"),
            open_issues_count=data.get("open_issues_count", 0),
            has_issues=data.get("has_issues", False),
            has_wiki=data.get("has_wiki", False),
            fork=data.get("fork", False),
            archived=data.get("archived", False),
            disabled=data.get("disabled", False),
            pushed_at=data.get("pushed_at"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


class RepositoryPage(BaseModel):
    """One page of the authenticated user's repositories as returned by GitHub."""
    repositories: List[Dict[str, Any]]
    total_count: int
    has_next_page: bool


class Pagination(CamelModel):
    page: int
    per_page: int
    total: int
    has_next_page: bool


class FolderEntry(CamelModel):
    name: str
    path: str
    type: str = "dir"
    html_url: Optional[str] = None


class FileEntry(CamelModel):
    name: str
    path: str
    size: int = 0
    type: str = "file"
    download_url: Optional[str] = None
    html_url: Optional[str] = None
    is_text_file: bool = False


class GitHubFile(CamelModel):
    name: str
    path: str
    content: str
    size: int = 0
    sha: Optional[str] = None


class FileFetchResult(CamelModel):
    path: str
    success: bool
    data: Optional[GitHubFile] = None
    error: Optional[str] = None


class PathError(CamelModel):
    path: str
    error: str


class BatchSummary(CamelModel):
    total: int
    successful: int
    failed: int


# ---------------------------------------------------------------------------
# Test summaries and generated tests
# ---------------------------------------------------------------------------

class SourceFile(BaseModel):
    """A fetched source file handed to the AI gateway."""
    path: str
    content: str
    name: Optional[str] = None
    size: Optional[int] = None


class TestSummary(CamelModel):
    id: str = Field(..., description="Unique identifier within the batch")
    title: str = Field(..., description="Brief descriptive title")
    description: str = Field(..., description="What the test should verify")
    type: TestType
    file: str = Field(..., description="Source file the test relates to")
    priority: TestPriority = Field(default=TestPriority.MEDIUM)
    complexity: TestComplexity = Field(default=TestComplexity.MEDIUM)
    framework: Optional[str] = None
    created_at: Optional[datetime] = None


class ValidSummary(BaseModel):
    summary: TestSummary


class InvalidSummary(BaseModel):
    reason: str
    raw: Any = None


SummaryResult = Union[ValidSummary, InvalidSummary]


class GeneratedTest(CamelModel):
    file_name: str
    content: str
    framework: str
    source_file: str
    test_summary: TestSummary
    generated_at: datetime = Field(default_factory=datetime.utcnow)


class SummaryMetadata(CamelModel):
    total_files: int
    processed_files: int
    failed_files: int
    generated_summaries: int
    discarded_summaries: int = 0
    errors: List[PathError] = Field(default_factory=list)


class SummaryBatch(BaseModel):
    summaries: List[TestSummary]
    metadata: SummaryMetadata


class TestCodeResult(CamelModel):
    summary: TestSummary
    test_code: GeneratedTest
    success: bool = True


class TestCodeError(CamelModel):
    summary: Dict[str, Any]
    error: str
    success: bool = False


class TestBatch(BaseModel):
    results: List[TestCodeResult]
    errors: List[TestCodeError]


# ---------------------------------------------------------------------------
# Pull requests
# ---------------------------------------------------------------------------

class TestFile(CamelModel):
    file_name: str = Field(..., min_length=1)
    content: str


class CreatedFile(CamelModel):
    file_name: str
    path: str
    sha: Optional[str] = None
    html_url: Optional[str] = None


class FileError(CamelModel):
    file_name: str
    error: str


class PullRequestInfo(CamelModel):
    id: int
    number: int
    title: str
    html_url: str
    branch: str


class TestPullRequestResult(BaseModel):
    pull_request: PullRequestInfo
    created: List[CreatedFile]
    errors: List[FileError]


class BranchInfo(CamelModel):
    name: str
    ref: str
    sha: str
    url: Optional[str] = None


class CommittedFile(CamelModel):
    name: str
    path: str
    sha: str
    size: Optional[int] = None
    html_url: Optional[str] = None


class CommitInfo(CamelModel):
    sha: str
    message: Optional[str] = None
    html_url: Optional[str] = None


class RefInfo(CamelModel):
    ref: str
    sha: str


class PullRequestUser(CamelModel):
    login: str
    avatar: Optional[str] = None


class PullRequestDetail(CamelModel):
    id: int
    number: int
    title: str
    body: Optional[str] = None
    state: Optional[str] = None
    html_url: str
    diff_url: Optional[str] = None
    patch_url: Optional[str] = None
    head: RefInfo
    base: RefInfo
    user: Optional[PullRequestUser] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_github(cls, data: Dict[str, Any]) -> "PullRequestDetail":
        user = data.get("user")
        return cls(
            id=data["id"],
            number=data["number"],
            title=data["title"],
            body=data.get("body"),
            state=data.get("state"),
            html_url=data["html_url"],
            diff_url=data.get("diff_url"),
            patch_url=data.get("patch_url"),
            head=RefInfo(ref=data["head"]["ref"], sha=data["head"]["sha"]),
            base=RefInfo(ref=data["base"]["ref"], sha=data["base"]["sha"]),
            user=PullRequestUser(login=user["login"], avatar=user.get("avatar_url")) if user else None,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class OAuthCallbackRequest(CamelModel):
    code: Optional[str] = None
    state: Optional[str] = None
    error: Optional[str] = None


class AccessTokenRequest(CamelModel):
    access_token: str = Field(..., min_length=1, description="GitHub access token")


class MultipleFilesRequest(AccessTokenRequest):
    file_paths: List[str] = Field(..., min_length=1)


class CreateBranchRequest(AccessTokenRequest):
    branch_name: str = Field(..., min_length=1)
    from_branch: Optional[str] = None


class CreateFileRequest(AccessTokenRequest):
    path: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    branch: str = "main"
    sha: Optional[str] = None


class CreatePullRequestRequest(AccessTokenRequest):
    title: str = Field(..., min_length=1)
    body: str = ""
    head: str = Field(..., min_length=1)
    base: Optional[str] = None


class FileRef(CamelModel):
    path: str = Field(..., min_length=1)
    name: Optional[str] = None
    size: Optional[int] = None


class RepoRequest(AccessTokenRequest):
    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)


class GenerateSummariesRequest(RepoRequest):
    files: List[FileRef] = Field(..., min_length=1)


class GenerateCodeRequest(RepoRequest):
    test_summary: Dict[str, Any]
    framework: Optional[str] = None


class GenerateMultipleRequest(RepoRequest):
    test_summaries: List[Dict[str, Any]] = Field(..., min_length=1)
    framework: Optional[str] = None


class CreateTestPullRequestRequest(RepoRequest):
    test_files: List[TestFile] = Field(..., min_length=1)
    title: str = "Add AI-generated test cases"
    description: str = "This PR adds test cases generated by the Test Case Generator application."
    base_branch: Optional[str] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class SuccessResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None


class AuthUrlResponse(SuccessResponse):
    auth_url: str
    state: str


class AuthResponse(SuccessResponse):
    token: str
    user: GitHubUserProfile


class VerifyResponse(SuccessResponse):
    user: SessionUser


class RepositoryListResponse(SuccessResponse):
    repositories: List[Repository]
    pagination: Pagination


class ContentsResponse(SuccessResponse):
    path: str
    folders: List[FolderEntry]
    files: List[FileEntry]
    total_files: int
    total_code_files: int


class FileContentResponse(SuccessResponse):
    file: GitHubFile


class MultipleFilesResponse(SuccessResponse):
    files: List[GitHubFile]
    errors: List[PathError]
    summary: BatchSummary


class BranchResponse(SuccessResponse):
    branch: BranchInfo


class CreateFileResponse(SuccessResponse):
    file: CommittedFile
    commit: CommitInfo


class PullRequestResponse(SuccessResponse):
    pull_request: PullRequestDetail


class SummariesResponse(SuccessResponse):
    summaries: List[TestSummary]
    metadata: SummaryMetadata


class TestCodeResponse(SuccessResponse):
    test_code: GeneratedTest


class MultipleTestsResponse(SuccessResponse):
    results: List[TestCodeResult]
    errors: List[TestCodeError]
    summary: BatchSummary


class FileCreationReport(CamelModel):
    created: List[CreatedFile]
    errors: List[FileError]


class PullRequestSummary(CamelModel):
    total_files: int
    created_files: int
    failed_files: int


class TestPullRequestResponse(SuccessResponse):
    pull_request: PullRequestInfo
    files: FileCreationReport
    summary: PullRequestSummary


class FrameworksResponse(SuccessResponse):
    frameworks: Dict[str, List[str]]
    default_frameworks: Dict[str, str]
