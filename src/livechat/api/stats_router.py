import logging
from typing import List
from fastapi import APIRouter, HTTPException, Depends

from src.livechat.chat.service_container import ServiceContainer
from src.livechat.models.api import AdminStats, AgentStats, UserStats
from src.livechat.models.chat import ChatRecord, CurrentUser
from src.livechat.api.deps import (
    get_service_container,
    require_admin,
    require_agent,
    require_user,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/admin", response_model=AdminStats)
async def get_admin_stats(
    user: CurrentUser = Depends(require_admin),
    services: ServiceContainer = Depends(get_service_container)
):
    try:
        return await services.stats_service.admin_stats()
    except Exception as e:
        logger.error(f"Error fetching admin stats: {e}")
        raise HTTPException(status_code=500, detail="Server error")


@router.get("/agent", response_model=AgentStats)
async def get_agent_stats(
    user: CurrentUser = Depends(require_agent),
    services: ServiceContainer = Depends(get_service_container)
):
    try:
        return await services.stats_service.agent_stats(user.id)
    except Exception as e:
        logger.error(f"Error fetching agent stats: {e}")
        raise HTTPException(status_code=500, detail="Server error")


@router.get("/user/chats", response_model=List[ChatRecord])
async def get_user_recent_chats(
    user: CurrentUser = Depends(require_user),
    services: ServiceContainer = Depends(get_service_container)
):
    """The customer's most recent chats, newest first"""
    try:
        return await services.stats_service.user_recent_chats(user.id)
    except Exception as e:
        logger.error(f"Error fetching user chats: {e}")
        raise HTTPException(status_code=500, detail="Server error")


@router.get("/user", response_model=UserStats)
async def get_user_stats(
    user: CurrentUser = Depends(require_user),
    services: ServiceContainer = Depends(get_service_container)
):
    try:
        return await services.stats_service.user_stats(user.id)
    except Exception as e:
        logger.error(f"Error fetching user stats: {e}")
        raise HTTPException(status_code=500, detail="Server error")
