#!/usr/bin/env python3
"""
Development startup script for the Test Case Generator API
"""

import shutil
import sys
from pathlib import Path


def main():
    """Main startup function"""
    print("Starting Test Case Generator API...")

    env_file = Path(".env")
    if not env_file.exists():
        if not Path(".env.example").exists():
            print(".env and .env.example are both missing")
            sys.exit(1)
        shutil.copy(".env.example", ".env")
        print(".env created from .env.example. Fill in the GitHub OAuth app, JWT secret and AI keys.")

    from app.config.settings import settings

    missing = settings.missing_required()
    if missing:
        print(f"Missing required configuration: {', '.join(missing)}")
        sys.exit(1)
    if not (settings.openai_api_key or settings.gemini_api_key):
        print("Set OPENAI_API_KEY or GEMINI_API_KEY before starting the server")
        sys.exit(1)

    base_url = f"http://localhost:{settings.api_port}{settings.api_prefix}"
    print(f"API Documentation: {base_url}/docs")
    print(f"Health Check: {base_url}/health")
    print("Use Ctrl+C to stop the server")

    import uvicorn
    try:
        uvicorn.run(
            "main:app",
            host=settings.api_host,
            port=settings.api_port,
            reload=True,
            log_level=settings.log_level.lower()
        )
    except KeyboardInterrupt:
        print("\nServer stopped by user")


if __name__ == "__main__":
    main()
