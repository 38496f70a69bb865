from fastapi import APIRouter

from ...routers import auth as auth_router
from ...routers import lists as lists_router
from ...routers import tasks as tasks_router


api_router = APIRouter(prefix="/api/v1")

# Endpoints are available at /api/v1/auth, /api/v1/tasks and /api/v1/lists
api_router.include_router(auth_router.router)
api_router.include_router(tasks_router.router)
api_router.include_router(lists_router.router)


@api_router.get("/", tags=["meta"])  # lightweight meta endpoint
def api_info():
    return {
        "name": "TodoApp API",
        "version": "v1",
        "docs": "/docs",
        "auth": {
            "register": "/api/v1/auth/register",
            "verify_registration": "/api/v1/auth/verify-registration",
            "login": "/api/v1/auth/login",
            "me": "/api/v1/auth/me",
            "forgot_password": "/api/v1/auth/forgot-password",
        },
        "tasks": "/api/v1/tasks",
        "counts": "/api/v1/tasks/stats/counts",
        "lists": "/api/v1/lists",
    }
