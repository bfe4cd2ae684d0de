from datetime import datetime, timezone
from typing import Literal, Optional

DeliveryStatus = Literal["pending", "running", "done", "failed"]

def create_delivery_document(
    guid: str,
    action: str,
    list_obj: dict,
    org: str,
    org_id,
    scheduler_enabled: Optional[bool] = None,
    max_attempts: int = 3,
) -> dict:
    """
    hook_deliveries 컬렉션용 document 생성

    Args:
        guid: upstream webhook delivery id (중복 delivery 방지)
        action: "created" | "updated" | "deleted" | ...
        list_obj: repository payload (repo_id, repo_name, created_at, ...)
        org: organization 이름
        org_id: organization id
        scheduler_enabled: None이면 worker 설정값 사용
    """
    now = datetime.now(timezone.utc)

    return {
        "guid": guid,
        "action": action,
        "listObj": list_obj,
        "delivery": {
            "org": org,
            "orgId": org_id,
        },
        "scheduler_enabled": scheduler_enabled,
        "status": "pending",
        "attempts": 0,
        "max_attempts": max_attempts,
        "created_at": now,
        "updated_at": now,
        "started_at": None,      # running 전환 시 기록
        "completed_at": None,    # done/failed 전환 시 기록
        "error_message": None,   # 실패 원인
    }
