import posixpath
import re
import secrets
import string
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from app.models.schemas import (
    InvalidSummary,
    SummaryResult,
    TestComplexity,
    TestPriority,
    TestSummary,
    TestType,
    ValidSummary,
)


# Request policy limits, checked before any upstream call
MAX_SUMMARY_FILES = 5
MAX_TESTS_PER_BATCH = 10
MAX_FILES_PER_FETCH = 10

BRANCH_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9._/-]+$")

CODE_EXTENSIONS = {
    ".js", ".jsx", ".ts", ".tsx", ".py", ".java", ".cpp", ".c", ".cs", ".go",
    ".php", ".rb", ".swift", ".kt", ".scala", ".rust", ".vue", ".html", ".css",
    ".scss", ".sass", ".less", ".sql", ".sh", ".bash", ".ps1", ".json", ".xml",
    ".yaml", ".yml", ".md", ".txt",
}

TEXT_EXTENSIONS = CODE_EXTENSIONS | {".dockerfile", ".gitignore", ".env"}

SUPPORTED_FRAMEWORKS: Dict[str, list] = {
    "javascript": ["jest", "vitest", "mocha", "jasmine"],
    "typescript": ["jest", "vitest", "mocha"],
    "python": ["pytest", "unittest", "nose2"],
    "java": ["junit", "testng"],
    "csharp": ["xunit", "nunit", "mstest"],
    "go": ["testing", "ginkgo"],
    "php": ["phpunit", "codeception"],
    "ruby": ["rspec", "minitest"],
}

DEFAULT_FRAMEWORKS: Dict[str, str] = {
    ".js": "jest",
    ".jsx": "jest",
    ".ts": "jest",
    ".tsx": "jest",
    ".py": "pytest",
    ".java": "junit",
    ".cs": "xunit",
    ".go": "testing",
    ".php": "phpunit",
    ".rb": "rspec",
}

_JS_EXTENSIONS = {".js", ".jsx", ".ts", ".tsx"}
_REQUIRED_SUMMARY_FIELDS = ("id", "title", "description", "type", "file")


def get_file_extension(file_path: str) -> str:
    """Extension of the last path segment including the dot, or '' when absent."""
    name = posixpath.basename(file_path or "")
    dot = name.rfind(".")
    return name[dot:] if dot > 0 else ""


def is_code_file(filename: str) -> bool:
    return get_file_extension(filename).lower() in CODE_EXTENSIONS


def is_text_file(filename: str) -> bool:
    name = posixpath.basename(filename or "").lower()
    if name.startswith(".") and name in TEXT_EXTENSIONS:
        return True
    return get_file_extension(name) in TEXT_EXTENSIONS


def detect_testing_framework(file_path: str, project_type: Optional[str] = None) -> str:
    """Pick a testing framework from the source file's extension."""
    extension = get_file_extension(file_path).lower()
    if extension in _JS_EXTENSIONS:
        return "jest" if project_type == "react" else "vitest"
    return DEFAULT_FRAMEWORKS.get(extension, "jest")


def build_test_file_name(source_path: str, framework: str) -> str:
    """Conventional test file name for a source file under the given framework.

    jest/vitest -> <base>.test<ext>, pytest -> test_<base>.py,
    junit -> <Base>Test.java, anything else -> <base>_test<ext>.
    """
    extension = get_file_extension(source_path)
    base_name = posixpath.basename(source_path)
    if extension:
        base_name = base_name[: -len(extension)]

    if framework in ("jest", "vitest"):
        return f"{base_name}.test{extension}"
    if framework == "pytest":
        return f"test_{base_name}.py"
    if framework == "junit":
        return f"{base_name[:1].upper()}{base_name[1:]}Test.java"
    return f"{base_name}_test{extension}"


def sanitize_filename(filename: str) -> str:
    sanitized = re.sub(r"[^a-zA-Z0-9._-]", "_", filename)
    sanitized = re.sub(r"_+", "_", sanitized)
    return sanitized.strip("_")


def generate_branch_name(prefix: str = "test-cases") -> str:
    """Unique branch name: <prefix>-<UTC timestamp>-<6 random chars>."""
    timestamp = datetime.utcnow().strftime("%Y-%m-%dT%H-%M-%S")
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(6))
    return f"{prefix}-{timestamp}-{suffix}"


def is_valid_branch_name(branch_name: str) -> bool:
    return bool(BRANCH_NAME_PATTERN.match(branch_name or ""))


def validate_test_summary(raw: Any) -> SummaryResult:
    """Strictly validate a test summary without filling in any defaults."""
    if not isinstance(raw, dict):
        return InvalidSummary(reason="Test summary must be an object", raw=raw)

    missing = [field for field in _REQUIRED_SUMMARY_FIELDS if not raw.get(field)]
    if missing:
        return InvalidSummary(reason=f"Missing required fields: {', '.join(missing)}", raw=raw)

    valid_types = [t.value for t in TestType]
    if raw["type"] not in valid_types:
        return InvalidSummary(reason=f"Invalid test type: {raw['type']}", raw=raw)

    valid_priorities = [p.value for p in TestPriority]
    if raw.get("priority") and raw["priority"] not in valid_priorities:
        return InvalidSummary(reason=f"Invalid priority: {raw['priority']}", raw=raw)

    valid_complexities = [c.value for c in TestComplexity]
    if raw.get("complexity") and raw["complexity"] not in valid_complexities:
        return InvalidSummary(reason=f"Invalid complexity: {raw['complexity']}", raw=raw)

    data = {key: value for key, value in raw.items() if value is not None}
    data["id"] = str(raw["id"])
    try:
        return ValidSummary(summary=TestSummary.model_validate(data))
    except PydanticValidationError as e:
        return InvalidSummary(reason=f"Malformed test summary: {e.errors()[0]['msg']}", raw=raw)


def parse_test_summary(raw: Any, index: int) -> SummaryResult:
    """Fill safe defaults for optional fields of an AI-produced summary, then validate."""
    if not isinstance(raw, dict):
        return InvalidSummary(reason="Test summary must be an object", raw=raw)

    candidate = dict(raw)
    candidate["id"] = candidate.get("id") or f"test-{index + 1}"
    candidate["title"] = candidate.get("title") or "Untitled Test"
    candidate["priority"] = candidate.get("priority") or TestPriority.MEDIUM.value
    candidate["complexity"] = candidate.get("complexity") or TestComplexity.MEDIUM.value
    return validate_test_summary(candidate)


def filter_code_files(contents: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep only file entries of a directory listing that look like source code."""
    return [item for item in contents if item.get("type") == "file" and is_code_file(item.get("name", ""))]
