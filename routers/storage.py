"""Object store diagnostics."""

from fastapi import APIRouter, Depends

from core.auth import get_current_user
from domain.user.models import User
from services.storage_service import StorageProvider, get_storage_provider

router = APIRouter()


@router.get("/health")
async def storage_health(
    current_user: User = Depends(get_current_user),
    storage: StorageProvider = Depends(get_storage_provider),
):
    """Probe the bucket (HeadBucket on R2)."""
    await storage.health()
    return {"ok": True, "bucket": storage.bucket_name}
