from motor.motor_asyncio import AsyncIOMotorDatabase

from hooks.repos.repo_routing import (
    COMMIT_COLLECTION,
    REPO_COLLECTION,
    TEMP_REPO_COLLECTION,
    org_database_name,
)


async def ensure_org_indexes(db: AsyncIOMotorDatabase):
    """org database의 repos / temp_repos / commits 인덱스 생성"""
    for name in (REPO_COLLECTION, TEMP_REPO_COLLECTION):
        col = db[name]

        # repo_id unique: upsert의 identity key, tombstone 보호에도 필요
        await col.create_index(
            [("repo_id", 1)],
            unique=True,
            name="repo_id_unique",
        )

        # scheduler가 onboarding 대상 repo 조회
        await col.create_index(
            [("deleted", 1), ("onboard_complete", 1)],
            name="deleted_onboard",
        )

    # earliest commit 조회
    await db[COMMIT_COLLECTION].create_index(
        [("repo_id", 1), ("date", 1)],
        name="repo_id_date_asc",
    )


async def ensure_known_org_indexes(mongo, orgs_col, db_prefix: str) -> int:
    """organizations에 등록된 모든 org database 인덱스 생성"""
    count = 0
    async for org in orgs_col.find({"org": {"$exists": True}}, {"org": 1}):
        await ensure_org_indexes(mongo[org_database_name(org["org"], db_prefix)])
        count += 1
    return count
