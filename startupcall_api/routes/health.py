from fastapi import APIRouter, Depends
from sqlalchemy import text

from startupcall_kernel import __version__
from startupcall_api.deps import get_platform
from startupcall_services.platform import Platform

router = APIRouter(tags=["Health"])


@router.get("/health")
def health(platform: Platform = Depends(get_platform)) -> dict:
    with platform.read_session() as session:
        session.execute(text("SELECT 1"))
    return {
        "status": "ok",
        "version": __version__,
        "environment": platform.config.environment,
        "database": platform.engine.dialect.name,
    }
