# src/api/routes/health_router.py
from fastapi import APIRouter
from dependency_injector.wiring import Provide, inject

from core.containers.app_containers import AppContainer

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("/")
@inject
async def health_check(
    client=Provide[AppContainer.mongo_client],
    queue=Provide[AppContainer.delivery_queue],
):
    # 실제 MongoDB ping 테스트
    try:
        await client.admin.command("ping")
        mongo_status = "connected"
    except Exception:
        mongo_status = "disconnected"

    deliveries = None
    if mongo_status == "connected":
        status_counts = await queue.status_counts()
        deliveries = {
            "pending": status_counts.get("pending", 0),
            "running": status_counts.get("running", 0),
            "failed": status_counts.get("failed", 0),
        }

    return {
        "status": "ok" if mongo_status == "connected" else "degraded",
        "mongo": mongo_status,
        "deliveries": deliveries,
    }
