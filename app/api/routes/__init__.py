from fastapi import APIRouter
from app.api.routes import auth, github, health, test_cases

api_router = APIRouter()

# Include all route modules
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(github.router)
api_router.include_router(test_cases.router)
