from datetime import datetime, timezone
from typing import Optional

from core.config.settings import settings
from core.logging.logger import get_logger


class OrgOnboardingTrigger:
    """
    Organization pagination / onboarding 요청 플래그 설정.
    Scheduler가 플래그를 보고 실제 작업을 수행하므로 여러 번 호출해도 안전하다.
    """

    def __init__(self, mongo, db_name: Optional[str] = None):
        self.orgs_col = mongo[db_name or settings.MONGO_DB_NAME]["organizations"]
        self.logger = get_logger(__name__)

    async def trigger_onboarding(self, org_id) -> bool:
        now = datetime.now(timezone.utc)
        result = await self.orgs_col.update_one(
            {"org_id": org_id},
            {
                "$set": {
                    "paginate_pending": True,
                    "onboard_pending": True,
                    "onboard_requested_at": now,
                    "updated_at": now,
                }
            },
            upsert=False,
        )

        if result.matched_count == 0:
            self.logger.info(f"Organization {org_id} not found. Onboarding trigger skipped")
            return False

        self.logger.info(f"Organization {org_id} flagged for pagination and onboarding")
        return True
