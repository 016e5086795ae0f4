"""
Test Case Generator API

FastAPI backend that signs users in with GitHub, lets them browse their
repositories, asks an AI provider for test case ideas and test code, and
commits the generated tests to a fresh branch with a pull request.

Architecture Overview:
- Routes stay thin; services orchestrate; gateways talk to GitHub and AI providers
- Interface-based gateways (IGitHubService, IAIProvider) for testability
- Dependency Injection through a small container
- No database: GitHub holds the repositories, the browser holds the session

Key Features:
- GitHub OAuth sign-in exchanged for a signed session token (PyJWT)
- Repository listing, directory browsing and file retrieval over httpx
- Test case summaries and test code from OpenAI, with Gemini as fallback
- Branch, commit and pull request creation for generated tests
- Structured logging with structlog and a uniform JSON error envelope

Usage:
1. Copy .env.example to .env and configure GitHub OAuth, JWT_SECRET and an AI key
2. Install dependencies: pip install -e ".[test]"
3. Run the application: python start.py (or python main.py)
4. Access API docs at: http://localhost:5000/api/docs

API Endpoints:
- GET  /api/health - Liveness
- GET  /api/health/readiness - Configuration readiness
- GET  /api/auth/github-url - GitHub authorization URL
- POST /api/auth/github/callback - Exchange OAuth code for a session
- POST /api/auth/refresh - Re-issue a session from a GitHub token
- GET  /api/auth/verify - Check a session token
- POST /api/github/repositories - List repositories
- POST /api/github/{owner}/{repo}/contents - Browse a directory
- POST /api/github/{owner}/{repo}/file/{path} - Fetch one file
- POST /api/github/{owner}/{repo}/files - Fetch up to 10 files
- POST /api/test-cases/generate-summaries - Test ideas for up to 5 files
- POST /api/test-cases/generate-code - Test code for one idea
- POST /api/test-cases/generate-multiple - Test code for up to 10 ideas
- POST /api/test-cases/create-pull-request - Commit tests and open a PR

Architecture Components:

1. Controllers (app/api/routes/):
   - Request validation using Pydantic
   - Session guard via a Bearer token dependency

2. Services (app/services/):
   - AIService: prompts, provider fallback, response parsing
   - TestCaseService: summary, code and pull request workflows

3. Repositories (app/repositories/):
   - Gateway interfaces and their GitHub REST / OpenAI / Gemini implementations

4. Models (app/models/):
   - Pydantic schemas serialized with camelCase keys

5. Core (app/core/):
   - Errors, security, dependency injection and shared helpers

6. Configuration (app/config/):
   - Environment-based settings via pydantic-settings
"""

__version__ = "1.0.0"
__author__ = "Team Chai"
__description__ = "AI-assisted test case generation for GitHub repositories"
