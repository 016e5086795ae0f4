from datetime import timedelta
from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from app.config.settings import settings
from app.core.security import create_access_token
from main import create_app


def test_health_check(test_client):
    """Test health check endpoint"""
    response = test_client.get("/api/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert "version" in data
    assert "environment" in data


def test_readiness_check(test_client):
    """Test readiness check endpoint"""
    response = test_client.get("/api/health/readiness")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["openai"] == "ok"
    assert "timestamp" in data


def test_unknown_route_uses_error_envelope(test_client):
    response = test_client.get("/api/does-not-exist")
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "NOT_FOUND"


def test_github_auth_url(test_client):
    response = test_client.get("/api/auth/github-url")
    assert response.status_code == 200

    data = response.json()
    query = parse_qs(urlparse(data["authUrl"]).query)
    assert query["client_id"] == ["test-client-id"]
    assert query["state"] == [data["state"]]
    assert query["redirect_uri"] == ["http://localhost:3000/auth/github/callback"]


def test_github_auth_url_rejects_foreign_redirect(test_client):
    response = test_client.get("/api/auth/github-url", params={"redirect_uri": "https://evil.example.com"})
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_oauth_callback_issues_session_token(test_client, github_user):
    response = test_client.post("/api/auth/github/callback", json={"code": "abc"})
    assert response.status_code == 200

    data = response.json()
    assert data["user"]["username"] == "octocat"
    assert data["user"]["accessToken"] == "gho_abc"

    verify = test_client.get("/api/auth/verify", headers={"Authorization": f"Bearer {data['token']}"})
    assert verify.status_code == 200
    assert verify.json()["user"]["id"] == github_user["id"]


def test_oauth_callback_requires_code(test_client):
    response = test_client.post("/api/auth/github/callback", json={})
    assert response.status_code == 400


def test_verify_without_token(test_client):
    response = test_client.get("/api/auth/verify")
    assert response.status_code == 401
    assert response.json()["error"] == "TOKEN_MISSING"


def test_verify_with_garbage_token(test_client):
    response = test_client.get("/api/auth/verify", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 403
    assert response.json()["error"] == "TOKEN_INVALID"


def test_verify_with_expired_token(test_client, github_user):
    token = create_access_token(github_user, expires_delta=timedelta(seconds=-1))
    response = test_client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["error"] == "TOKEN_EXPIRED"


def test_private_routes_require_session(test_client):
    response = test_client.post("/api/github/repositories", json={"accessToken": "gho_x"})
    assert response.status_code == 401


def test_list_repositories_excluding_forks(test_client, auth_headers):
    response = test_client.post(
        "/api/github/repositories",
        params={"exclude_forks": True},
        json={"accessToken": "gho_x"},
        headers=auth_headers,
    )
    assert response.status_code == 200

    data = response.json()
    assert [repo["name"] for repo in data["repositories"]] == ["app"]
    assert data["pagination"]["hasNextPage"] is False


def test_repository_contents_filters_code_files(test_client, auth_headers):
    response = test_client.post("/api/github/octocat/app/contents", json={"accessToken": "gho_x"}, headers=auth_headers)
    assert response.status_code == 200

    data = response.json()
    assert [folder["name"] for folder in data["folders"]] == ["src"]
    assert [file["name"] for file in data["files"]] == ["index.js"]
    assert data["totalFiles"] == 2
    assert data["totalCodeFiles"] == 1


def test_multiple_files_limit(test_client, auth_headers):
    paths = [f"src/file{i}.js" for i in range(11)]
    response = test_client.post(
        "/api/github/octocat/app/files",
        json={"accessToken": "gho_x", "filePaths": paths},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_multiple_files_reports_failures(test_client, auth_headers, fake_github):
    fake_github.files["src/a.js"] = "export const a = 1;"
    response = test_client.post(
        "/api/github/octocat/app/files",
        json={"accessToken": "gho_x", "filePaths": ["src/a.js", "src/missing.js"]},
        headers=auth_headers,
    )
    assert response.status_code == 200

    data = response.json()
    assert [file["path"] for file in data["files"]] == ["src/a.js"]
    assert data["errors"][0]["path"] == "src/missing.js"
    assert data["summary"] == {"total": 2, "successful": 1, "failed": 1}


def test_create_branch_rejects_invalid_name(test_client, auth_headers, fake_github):
    response = test_client.post(
        "/api/github/octocat/app/branch",
        json={"accessToken": "gho_x", "branchName": "bad name!"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert fake_github.branches == []


def test_missing_request_field_is_validation_error(test_client, auth_headers):
    response = test_client.post("/api/github/octocat/app/files", json={"accessToken": "gho_x"}, headers=auth_headers)
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert body["success"] is False
    assert "timestamp" in body
    assert "body.filePaths" in [detail["field"] for detail in body["details"]]


def test_generate_summaries_limit(test_client, auth_headers, fake_github):
    files = [{"path": f"src/file{i}.js"} for i in range(6)]
    response = test_client.post(
        "/api/test-cases/generate-summaries",
        json={"accessToken": "gho_x", "owner": "octocat", "repo": "app", "files": files},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert fake_github.fetch_calls == []


def test_generate_summaries(test_client, auth_headers, fake_github, fake_provider):
    fake_github.files["src/sum.js"] = "export const sum = (a, b) => a + b;"
    fake_provider.responses = [
        '[{"id": 1, "title": "adds numbers", "description": "sum(1, 2) is 3", "type": "unit", "file": "src/sum.js"}]'
    ]
    response = test_client.post(
        "/api/test-cases/generate-summaries",
        json={"accessToken": "gho_x", "owner": "octocat", "repo": "app", "files": [{"path": "src/sum.js"}]},
        headers=auth_headers,
    )
    assert response.status_code == 200

    data = response.json()
    summary = data["summaries"][0]
    assert summary["id"] == "1"
    assert summary["framework"] == "jest"
    assert summary["priority"] == "medium"
    assert data["metadata"]["processedFiles"] == 1


def test_generate_code(test_client, auth_headers, fake_github):
    fake_github.files["src/sum.js"] = "export const sum = (a, b) => a + b;"
    summary = {"id": "1", "title": "adds", "description": "adds numbers", "type": "unit", "file": "src/sum.js"}
    response = test_client.post(
        "/api/test-cases/generate-code",
        json={"accessToken": "gho_x", "owner": "octocat", "repo": "app", "testSummary": summary},
        headers=auth_headers,
    )
    assert response.status_code == 200

    test_code = response.json()["testCode"]
    assert test_code["fileName"] == "sum.test.js"
    assert test_code["content"] == "test('works', () => {});"


def test_generate_code_rejects_invalid_summary(test_client, auth_headers):
    summary = {"id": "1", "title": "adds", "description": "adds numbers", "type": "smoke", "file": "src/sum.js"}
    response = test_client.post(
        "/api/test-cases/generate-code",
        json={"accessToken": "gho_x", "owner": "octocat", "repo": "app", "testSummary": summary},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_generate_multiple_limit(test_client, auth_headers):
    summaries = [
        {"id": str(i), "title": "t", "description": "d", "type": "unit", "file": "src/sum.js"} for i in range(11)
    ]
    response = test_client.post(
        "/api/test-cases/generate-multiple",
        json={"accessToken": "gho_x", "owner": "octocat", "repo": "app", "testSummaries": summaries},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_create_test_pull_request(test_client, auth_headers, fake_github):
    response = test_client.post(
        "/api/test-cases/create-pull-request",
        json={
            "accessToken": "gho_x",
            "owner": "octocat",
            "repo": "app",
            "testFiles": [{"fileName": "sum.test.js", "content": "test('a', () => {});"}],
        },
        headers=auth_headers,
    )
    assert response.status_code == 200

    data = response.json()
    assert data["pullRequest"]["number"] == 7
    assert data["pullRequest"]["branch"].startswith("ai-generated-tests-")
    assert data["summary"] == {"totalFiles": 1, "createdFiles": 1, "failedFiles": 0}
    assert fake_github.created_files[0]["path"] == "tests/sum.test.js"


def test_supported_frameworks(test_client, auth_headers):
    response = test_client.get("/api/test-cases/supported-frameworks", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["defaultFrameworks"][".py"] == "pytest"


def test_oversized_body_is_rejected(test_client, monkeypatch):
    monkeypatch.setattr(settings, "max_request_body_bytes", 64)

    response = test_client.post("/api/auth/github/callback", json={"code": "x" * 200})

    assert response.status_code == 413
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "PAYLOAD_TOO_LARGE"


def test_requests_over_the_limit_get_429(monkeypatch):
    monkeypatch.setattr(settings, "rate_limit_enabled", True)
    monkeypatch.setattr(settings, "rate_limit_requests", 2)
    client = TestClient(create_app())

    assert client.get("/api/health").status_code == 200
    assert client.get("/api/health").status_code == 200
    response = client.get("/api/health")

    assert response.status_code == 429
    assert response.json()["error"] == "TOO_MANY_REQUESTS"
