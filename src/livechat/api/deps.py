from fastapi import Depends, Request, HTTPException, status
from fastapi import WebSocket
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import logging
from typing import Optional
from hydra import initialize, compose
from src.livechat.chat.exceptions import AuthenticationError, LiveChatError
from src.livechat.chat.service_container import ServiceContainer
from src.livechat.models.chat import CurrentUser, UserRole

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_config():
    """Dependency to provide Hydra configuration."""
    with initialize(version_base=None, config_path="./../../../config"):
        cfg = compose(config_name="config")
    return cfg


def get_service_container(request: Request) -> ServiceContainer:
    if not getattr(request.app.state, "startup_complete", False):
        raise HTTPException(
            status_code=503,
            detail="Service is starting up. Please try again in a moment."
        )
    if not hasattr(request.app.state, "service_container"):
        raise HTTPException(
            status_code=500,
            detail="Service container not available"
        )
    return request.app.state.service_container


async def get_websocket_service_container(
    websocket: WebSocket
) -> Optional[ServiceContainer]:
    """Dependency to get the service container from app state for WebSocket connections."""
    if not getattr(websocket.app.state, "startup_complete", False):
        logger.warning("Service container not available for WebSocket - app may still be initializing")
        await websocket.close(code=1013)  # 1013 = Try Again Later
        return None
    return websocket.app.state.service_container


def to_http_exception(error: LiveChatError) -> HTTPException:
    headers = (
        {"WWW-Authenticate": "Bearer"}
        if isinstance(error, AuthenticationError)
        else None
    )
    return HTTPException(
        status_code=error.status_code, detail=error.message, headers=headers
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    services: ServiceContainer = Depends(get_service_container)
) -> CurrentUser:
    """Verify the bearer token and record the user's profile."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        user = services.jwt_validator.verify(credentials.credentials)
    except AuthenticationError as e:
        raise to_http_exception(e)
    await services.user_directory.sync(user)
    return user


def require_role(role: UserRole):
    """Build a dependency that admits only users holding ``role``."""
    async def dependency(
        user: CurrentUser = Depends(get_current_user)
    ) -> CurrentUser:
        if user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role.value.capitalize()} access required",
            )
        return user
    return dependency


require_user = require_role(UserRole.USER)
require_agent = require_role(UserRole.AGENT)
require_admin = require_role(UserRole.ADMIN)
