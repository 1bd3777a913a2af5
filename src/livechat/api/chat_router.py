import logging
from fastapi import APIRouter, HTTPException, Depends, status

from src.livechat.chat.exceptions import (
    LiveChatError,
    PermissionDeniedError,
    InvalidRequestError,
)
from src.livechat.chat.service_container import ServiceContainer
from src.livechat.models.api import (
    ChatMessagesResponse,
    CreateChatRequest,
    PendingChatsResponse,
    RateChatRequest,
)
from src.livechat.models.chat import ChatRecord, ChatStatus, CurrentUser
from src.livechat.api.deps import (
    get_current_user,
    get_service_container,
    require_agent,
    require_user,
    to_http_exception,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/create",
    response_model=ChatRecord,
    status_code=status.HTTP_201_CREATED
)
async def create_chat(
    request: CreateChatRequest,
    user: CurrentUser = Depends(require_user),
    services: ServiceContainer = Depends(get_service_container)
):
    """Open a support request and announce it to online agents"""
    try:
        chat = await services.chat_store.create_chat(user, request.subject)
        await services.coordinator.notify_new_chat(chat)
        return chat
    except LiveChatError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error creating chat: {e}")
        raise HTTPException(status_code=500, detail="Server error")


@router.get("/pending", response_model=PendingChatsResponse)
async def get_pending_chats(
    user: CurrentUser = Depends(require_agent),
    services: ServiceContainer = Depends(get_service_container)
):
    """The queue of chats waiting for an agent, oldest first"""
    try:
        chats = await services.chat_store.list_pending()
        return PendingChatsResponse(chats=chats)
    except Exception as e:
        logger.error(f"Error fetching pending chats: {e}")
        raise HTTPException(status_code=500, detail="Server error")


@router.get("/{chat_id}/messages", response_model=ChatMessagesResponse)
async def get_chat_messages(
    chat_id: str,
    user: CurrentUser = Depends(get_current_user),
    services: ServiceContainer = Depends(get_service_container)
):
    """Chat history, visible to its customer, its agent and admins"""
    try:
        chat = await services.chat_store.get_chat(chat_id)
        if not chat.can_view(user):
            raise PermissionDeniedError()
        messages = await services.chat_store.get_messages(chat.id)
        return ChatMessagesResponse(chat=chat, messages=messages)
    except LiveChatError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error fetching messages: {e}")
        raise HTTPException(status_code=500, detail="Server error")


@router.post("/{chat_id}/rate", response_model=ChatRecord)
async def rate_chat(
    chat_id: str,
    request: RateChatRequest,
    user: CurrentUser = Depends(require_user),
    services: ServiceContainer = Depends(get_service_container)
):
    """Let the customer rate a chat once it has ended"""
    try:
        chat = await services.chat_store.get_chat(chat_id)
        if chat.customer_id != user.id:
            raise PermissionDeniedError()
        if chat.status != ChatStatus.ENDED:
            raise InvalidRequestError("Only ended chats can be rated")
        return await services.chat_store.rate_chat(
            chat.id, request.rating, request.comment
        )
    except LiveChatError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error rating chat: {e}")
        raise HTTPException(status_code=500, detail="Server error")
