from motor.motor_asyncio import AsyncIOMotorDatabase

async def ensure_delivery_indexes(db: AsyncIOMotorDatabase):
    """hook_deliveries 컬렉션 인덱스 생성"""
    col = db["hook_deliveries"]

    # guid unique: 같은 webhook delivery 중복 적재 방지
    await col.create_index(
        [("guid", 1)],
        unique=True,
        name="guid_unique",
    )

    # status + created_at: pending delivery를 오래된 순서로 가져오기
    await col.create_index(
        [("status", 1), ("created_at", 1)],
        name="status_created_asc",
    )

    # updated_at: 모니터링용
    await col.create_index(
        [("updated_at", -1)],
        name="updated_at_desc",
    )
