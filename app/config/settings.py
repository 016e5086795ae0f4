from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # API Configuration
    debug: bool = False
    environment: str = "development"
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    api_prefix: str = "/api"

    # GitHub OAuth App (secrets come from environment)
    github_client_id: Optional[str] = None
    github_client_secret: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    github_oauth_url: str = "https://github.com/login/oauth"
    github_oauth_scope: str = "repo,user:email"
    # Defaults to <primary frontend>/auth/github/callback when unset
    github_redirect_uri: Optional[str] = None

    # Session credentials
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24

    # OpenAI Configuration (primary provider when present)
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"

    # Gemini Configuration (primary when OpenAI is absent, otherwise fallback)
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "google_gemini_api_key"),
    )
    gemini_model: str = "gemini-1.5-flash-latest"

    # Shared generation parameters
    ai_max_output_tokens: int = 4000
    ai_temperature: float = 0.3
    # Wall-clock budget shared by the primary attempt and its fallback
    ai_timeout_budget_seconds: float = 120.0

    # Per-client request limit over a fixed window, and the largest accepted body
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100
    rate_limit_window_minutes: int = 15
    max_request_body_bytes: int = 10 * 1024 * 1024

    # Frontend origins (comma separated); the first one is the primary
    frontend_url: str = "http://localhost:3000,http://localhost:5173"

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def rate_limit(self) -> str:
        return f"{self.rate_limit_requests} per {self.rate_limit_window_minutes} minutes"

    @property
    def frontend_urls(self) -> List[str]:
        return [url.strip().rstrip("/") for url in self.frontend_url.split(",") if url.strip()]

    @property
    def primary_frontend_url(self) -> str:
        urls = self.frontend_urls
        return urls[0] if urls else "http://localhost:3000"

    @property
    def oauth_redirect_uri(self) -> str:
        return self.github_redirect_uri or f"{self.primary_frontend_url}/auth/github/callback"

    def missing_required(self) -> List[str]:
        """Names of the environment variables the server cannot start without."""
        required = {
            "GITHUB_CLIENT_ID": self.github_client_id,
            "GITHUB_CLIENT_SECRET": self.github_client_secret,
            "JWT_SECRET": self.jwt_secret,
        }
        return [name for name, value in required.items() if not value]


# Global settings instance
settings = Settings()
