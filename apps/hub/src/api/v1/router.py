from fastapi import APIRouter, Depends

from config import settings
from services.agent_runtime import AgentRuntime
from .agents_router import router as agents_router
from .dependencies import get_runtime
from .events_router import router as events_router

router = APIRouter(prefix="/api/v1", tags=["v1"])
router.include_router(agents_router)
router.include_router(events_router)


@router.get("/health")
async def health(runtime: AgentRuntime = Depends(get_runtime)):
    agents = {agent.name: agent.working() for agent in runtime.list()}
    status = "ok" if all(agents.values()) else "warning"
    return {"status": status, "version": settings.app_version, "agents": agents}


@router.get("/info")
async def info():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "debug": settings.debug,
        "cors_origins": settings.cors_origins,
        "owm_base_url": settings.owm_base_url,
        "owm_units": settings.owm_units,
        "owm_language": settings.owm_language,
        "stringifier_mode": settings.stringifier_mode,
    }
