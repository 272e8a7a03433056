"""
FastAPI dependencies.
Provides the shared ObjectStore built during application startup.
"""
from fastapi import Request

from filegate.storage import ObjectStore


def get_object_store(request: Request) -> ObjectStore:
    """
    Return the process-wide ObjectStore.

    The store is constructed once in the lifespan handler and stored on
    app.state; it is never replaced while the app is serving.
    """
    return request.app.state.object_store
