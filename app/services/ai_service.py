import asyncio
import json
import re
from typing import Any, Callable, List, Optional, TypeVar

import structlog

from app.config.settings import settings
from app.core.errors import AppError, MalformedResponse, NoProviderConfigured, UpstreamUnavailable
from app.core.utils import build_test_file_name, get_file_extension, parse_test_summary
from app.models.schemas import GeneratedTest, SourceFile, SummaryResult, TestSummary
from app.repositories.interfaces.ai_service import IAIProvider

logger = structlog.get_logger()

T = TypeVar("T")

SYSTEM_PROMPT = (
    "You are a senior test engineer with expertise in various testing frameworks and best practices."
)

_CODE_BLOCK = re.compile(r"```[\w+-]*\n([\s\S]*?)\n```")


class AIService:
    """Gateway over an ordered list of AI providers.

    The first provider is tried first; any failure (provider error, timeout or an
    unparseable response) moves on to the next one. All attempts share one
    wall-clock budget, split evenly across the providers still to try. When every
    provider fails, the last error is raised.
    """

    def __init__(self, providers: List[IAIProvider], timeout_budget: Optional[float] = None):
        self.providers = list(providers)
        self.timeout_budget = timeout_budget or settings.ai_timeout_budget_seconds

    @property
    def provider_names(self) -> List[str]:
        return [provider.name for provider in self.providers]

    async def generate_test_case_summaries(self, files: List[SourceFile]) -> List[SummaryResult]:
        """Ask the model for test case summaries covering the given files"""
        prompt = self._build_summaries_prompt(files)
        results = await self._run(prompt, self._parse_test_case_summaries, "generate_summaries")
        logger.info(
            "Test case summaries parsed",
            files=len(files),
            results=len(results),
        )
        return results

    async def generate_test_code(self, summary: TestSummary, file_content: str, framework: str) -> GeneratedTest:
        """Ask the model for a complete test file implementing one summary"""
        prompt = self._build_test_code_prompt(summary, file_content, framework)
        content = await self._run(prompt, self._extract_code, "generate_test_code")
        return GeneratedTest(
            file_name=build_test_file_name(summary.file, framework),
            content=content,
            framework=framework,
            source_file=summary.file,
            test_summary=summary,
        )

    def ensure_configured(self) -> None:
        """Raise before any upstream work when no provider is available"""
        if not self.providers:
            raise NoProviderConfigured("No AI service configured")

    async def _run(self, prompt: str, parse: Callable[[str], T], operation: str) -> T:
        self.ensure_configured()

        loop = asyncio.get_event_loop()
        deadline = loop.time() + self.timeout_budget
        last_error: Optional[AppError] = None

        for attempt, provider in enumerate(self.providers):
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning("AI timeout budget exhausted", operation=operation, provider=provider.name)
                break
            # Even share of the remaining budget; unused time carries over to later attempts
            attempt_timeout = remaining / (len(self.providers) - attempt)
            try:
                text = await asyncio.wait_for(provider.complete(prompt, SYSTEM_PROMPT), timeout=attempt_timeout)
                result = parse(text)
                if attempt > 0:
                    logger.info("AI fallback provider succeeded", operation=operation, provider=provider.name)
                return result
            except asyncio.TimeoutError:
                last_error = UpstreamUnavailable(f"{provider.name} request timed out")
            except AppError as e:
                last_error = e
            except Exception as e:
                logger.error("Unexpected AI provider error", operation=operation, provider=provider.name, exc_info=True)
                last_error = UpstreamUnavailable(f"{provider.name} request failed: {e}")
            logger.warning(
                "AI provider failed",
                operation=operation,
                provider=provider.name,
                error_code=last_error.error_code,
                error=last_error.message,
                has_fallback=attempt + 1 < len(self.providers),
            )

        if last_error is None:
            last_error = UpstreamUnavailable("AI request timed out")
        raise last_error

    def _build_summaries_prompt(self, files: List[SourceFile]) -> str:
        file_contents = "\n\n".join(
            f"File: {f.path}\n```{get_file_extension(f.path).lstrip('.')}\n{f.content}\n```" for f in files
        )
        return f"""
You are a senior test engineer. Analyze the following code files and generate a comprehensive list of test case summaries.

For each file, identify:
1. Unit test cases for individual functions/methods
2. Integration test cases for component interactions
3. Edge cases and error handling scenarios
4. Performance test considerations (if applicable)

{file_contents}

Please provide your response as a JSON array of test case summaries. Each summary should have:
- id: unique identifier
- title: brief descriptive title
- description: detailed description of what the test should verify
- type: "unit", "integration", "e2e", or "performance"
- file: the source file this test relates to (use the exact path shown above)
- priority: "high", "medium", or "low"
- complexity: "simple", "medium", or "complex"

Example format:
[
  {{
    "id": "test-1",
    "title": "Should validate user input",
    "description": "Test that the validateUser function correctly validates required fields and returns appropriate error messages for invalid inputs",
    "type": "unit",
    "file": "src/utils/validation.js",
    "priority": "high",
    "complexity": "simple"
  }}
]

Generate 5-10 meaningful test case summaries covering the most important functionality.
Respond with the JSON array only.
"""

    def _build_test_code_prompt(self, summary: TestSummary, file_content: str, framework: str) -> str:
        language = get_file_extension(summary.file).lstrip(".")
        return f"""
You are a senior test engineer. Generate complete, runnable test code based on the following specification:

Test Case: {summary.title}
Description: {summary.description}
Type: {summary.type.value}
Target File: {summary.file}
Framework: {framework}

Source Code:
```{language}
{file_content}
```

Requirements:
1. Generate complete, runnable test code using {framework}
2. Include necessary imports and setup
3. Cover positive, negative, and edge cases
4. Follow best practices for {framework}
5. Add descriptive test names and comments
6. Include mock data where appropriate
7. Test error handling scenarios

For JavaScript/TypeScript files, use Jest/Vitest syntax.
For Python files, use pytest.
For Java files, use JUnit 5.
For other languages, use the most appropriate testing framework.

Provide the complete test file content in a single fenced code block.
"""

    def _parse_test_case_summaries(self, content: str) -> List[SummaryResult]:
        items = self._extract_json_array(content)
        if items is None:
            raise MalformedResponse("No JSON array of test case summaries found in AI response")
        return [parse_test_summary(item, index) for index, item in enumerate(items)]

    def _extract_json_array(self, content: str) -> Optional[List[Any]]:
        """Extract the first top-level JSON array from free text.

        Handles code fences. A lone JSON object is accepted too: either its first
        list-valued field or the object itself wrapped in a list.
        """
        if not content:
            return None
        cleaned = content.strip()
        cleaned = cleaned.replace("```json", "```").replace("```JSON", "```").replace("```", "")

        # Try a quick regex first
        m = re.search(r"\[[\s\S]*\]", cleaned)
        if m:
            try:
                parsed = json.loads(m.group())
                if isinstance(parsed, list):
                    return parsed
            except ValueError:
                pass

        # Fallback: decode from each opening bracket until one parses
        decoder = json.JSONDecoder()
        for i, ch in enumerate(cleaned):
            if ch not in "[{":
                continue
            try:
                parsed, _ = decoder.raw_decode(cleaned, i)
            except ValueError:
                continue
            if isinstance(parsed, list):
                return parsed
            if isinstance(parsed, dict):
                for value in parsed.values():
                    if isinstance(value, list):
                        return value
                return [parsed]
        return None

    def _extract_code(self, content: str) -> str:
        if not content or not content.strip():
            raise MalformedResponse("AI response did not contain any test code")
        match = _CODE_BLOCK.search(content)
        code = match.group(1) if match else content
        return code.strip()
