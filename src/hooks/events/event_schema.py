from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from hooks.errors import InvalidEventError
from hooks.shared.time_utils import to_utc_datetime
from core.logging.logger import get_logger

logger = get_logger(__name__)

# tombstone 관련 필드는 store 소유 (payload로 덮어쓰지 않음)
STORE_OWNED_FIELDS = ("deleted", "deleted_at")


class RepoAction(str, Enum):
    """
    Repository webhook action.

    Closed set. Any other action string ("renamed", "transferred", "archived",
    or a missing action) resolves to UPDATED: it runs the commit-history repair
    and the upsert, and never triggers onboarding.
    """

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"

    @classmethod
    def _missing_(cls, value):
        logger.warning(f"Unknown repository action {value!r}, handling as '{cls.UPDATED.value}'")
        return cls.UPDATED


class RepoListItem(BaseModel):
    """
    Repository list item (webhook `listObj`).
    선언되지 않은 필드도 그대로 보존되어 record에 merge된다.
    """

    model_config = ConfigDict(extra="allow")

    repo_id: Union[int, str]
    repo_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("repo_id", mode="before")
    @classmethod
    def _require_repo_id(cls, value):
        if value is None or isinstance(value, bool):
            raise ValueError("repo_id is required")
        if isinstance(value, str) and not value.strip():
            raise ValueError("repo_id is required")
        return value

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _normalize_timestamp(cls, value):
        return to_utc_datetime(value)

    def to_patch(self) -> Dict[str, Any]:
        """
        Payload에 실제로 있던 필드만 담은 patch.
        present-but-null은 유지, absent는 제외 → store에서 partial update로 적용
        """
        declared = type(self).model_fields
        patch = {name: getattr(self, name) for name in self.model_fields_set if name in declared}
        patch.update(self.model_extra or {})

        for name in STORE_OWNED_FIELDS:
            patch.pop(name, None)

        return patch


@dataclass(frozen=True)
class RepoEvent:
    action: RepoAction
    item: RepoListItem

    @property
    def repo_id(self):
        return self.item.repo_id

    @classmethod
    def from_delivery(cls, delivery: dict) -> "RepoEvent":
        """hook_deliveries document → RepoEvent"""
        try:
            item = RepoListItem.model_validate(delivery.get("listObj") or {})
        except ValidationError as e:
            raise InvalidEventError(
                f"Invalid repository payload: {e.errors(include_url=False)}",
                delivery_id=delivery.get("_id"),
            ) from e

        return cls(action=RepoAction(delivery.get("action")), item=item)


@dataclass(frozen=True)
class OrgContext:
    org: str
    org_id: Any

    @classmethod
    def from_delivery(cls, delivery: dict) -> "OrgContext":
        envelope = delivery.get("delivery")
        if not isinstance(envelope, dict):
            raise InvalidEventError("Delivery envelope missing", delivery_id=delivery.get("_id"))

        org = envelope.get("org")
        org_id = envelope.get("orgId")
        if not org or org_id is None:
            raise InvalidEventError(
                f"Delivery envelope missing org/orgId: org={org!r}, orgId={org_id!r}",
                delivery_id=delivery.get("_id"),
            )

        return cls(org=org, org_id=org_id)
