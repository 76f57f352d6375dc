from fastapi import APIRouter
from ...db import db_health

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health():
    db_ok = await db_health()
    return {
        "status": "ok" if db_ok else "degraded",
        "dependencies": {"database": db_ok},
    }

@router.get("/readiness")
async def readiness():
    db_ok = await db_health()
    return {"ready": db_ok, "database": db_ok}

@router.get("/liveness")
async def liveness():
    return {"alive": True}
