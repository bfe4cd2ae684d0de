from motor.motor_asyncio import AsyncIOMotorDatabase

async def ensure_organization_indexes(db: AsyncIOMotorDatabase):
    await db["organizations"].create_index("org_id", unique=True)
