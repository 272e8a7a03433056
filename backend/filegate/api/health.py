"""
Health check endpoint.
Verifies the object store is reachable.
"""
from fastapi import APIRouter, Depends, HTTPException

from filegate.api.dependencies import get_object_store
from filegate.errors import StoreFailure
from filegate.storage import ObjectStore

router = APIRouter()


@router.get("")
async def health_check(store: ObjectStore = Depends(get_object_store)):
    """
    Health check endpoint.
    Returns status of the storage backend.
    """
    health_status = {
        "status": "healthy",
        "storage": store.backend_name,
    }

    try:
        await store.ping()
        health_status["storage_status"] = "connected"
    except StoreFailure as e:
        health_status["storage_status"] = f"error: {e.cause or e.message}"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
