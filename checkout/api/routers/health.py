# checkout/api/routers/health.py
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from checkout.api.deps import get_cache
from checkout.data.database import get_db, ping
from checkout.services.cache_service import CacheService
from checkout.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


@router.get("/")
def health_check():
    return {"status": "healthy", "service": "checkout"}


@router.get("/ready")
def readiness_check(db: Session = Depends(get_db), cache: CacheService = Depends(get_cache)):
    try:
        ping(db)
    except SQLAlchemyError as e:
        logger.error(f"Readiness: database unavailable: {e}")
        return JSONResponse(status_code=503, content={"status": "not_ready", "reason": "database_unavailable"})

    #cache jest opcjonalny, jego brak to tylko degradacja
    cache_ok = cache.is_available()
    return {
        "status": "ready" if cache_ok else "degraded",
        "checks": {"database": "healthy", "cache": "healthy" if cache_ok else "unavailable"},
    }
