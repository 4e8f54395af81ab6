from fastapi import APIRouter, Depends, HTTPException

from pgconnect.api.dependencies import get_database
from pgconnect.database import Database
from pgconnect.errors import ConnectionError

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("/db")
async def database_health(database: Database = Depends(get_database)):
    try:
        await database.ping()
    except ConnectionError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"status": "ok", "database": database.config.database}
