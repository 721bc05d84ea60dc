import logging

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from resume_chat.database import get_db, run_blocking
from resume_chat.dependencies import (
    check_session_quota,
    check_token_quota,
    get_benefits_provider,
    get_chat_service,
    get_current_user_id,
    require_session_quota,
)
from resume_chat.errors import HTTP_STATUS_BY_CODE
from resume_chat.schemas.chat import (
    ChatEnhanceRequest,
    CreateSessionRequest,
    RenameSessionRequest,
    SaveResumeRequest,
    ServiceResponse,
)
from resume_chat.services.benefits import BenefitsProvider
from resume_chat.services.chat_enhancement_service import ChatEnhancementService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/resume/chat", tags=["chat"])


def to_http(result: ServiceResponse) -> JSONResponse:
    """Same body on success and failure; the status code carries the error class."""
    status_code = 200 if result.status else HTTP_STATUS_BY_CODE.get(result.error or "", 500)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(result))


@router.post("", dependencies=[Depends(require_session_quota)])
async def create_session(
    data: CreateSessionRequest | None = None,
    user_id: str = Depends(get_current_user_id),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    template_id = data.template_id if data else None
    return to_http(await service.create_session(user_id, template_id))


@router.get("")
async def list_sessions(
    page: int = 1,
    page_size: int = 20,
    user_id: str = Depends(get_current_user_id),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    return to_http(await service.list_sessions(user_id, page, page_size))


@router.post("/enhance")
async def enhance(
    data: ChatEnhanceRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    benefits: BenefitsProvider = Depends(get_benefits_provider),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    await run_blocking(check_token_quota, db, benefits, user_id, data.message)
    if not data.chat_id:
        # Enhance without a chat opens a new one.
        await run_blocking(check_session_quota, db, benefits, user_id)
    result = await service.enhance(
        user_id,
        data.message,
        chat_id=data.chat_id,
        resume_data=data.resume_data,
        resume_html=data.resume_html,
        template_id=data.template_id,
    )
    return to_http(result)


@router.get("/history/{history_id}")
async def get_history_detail(
    history_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    return to_http(await service.get_history_detail(user_id, history_id))


@router.get("/{chat_id}")
async def get_session(
    chat_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    return to_http(await service.get_session(user_id, chat_id))


@router.delete("/{chat_id}")
async def delete_session(
    chat_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    return to_http(await service.delete_session(user_id, chat_id))


@router.put("/{chat_id}/title")
async def rename_session(
    chat_id: str,
    data: RenameSessionRequest,
    user_id: str = Depends(get_current_user_id),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    return to_http(await service.rename_session(user_id, chat_id, data.title))


@router.get("/{chat_id}/history")
async def list_history(
    chat_id: str,
    page: int = 1,
    page_size: int = 20,
    sort_order: str = "desc",
    search: str | None = None,
    template_id: str | None = None,
    user_id: str = Depends(get_current_user_id),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    result = await service.list_history(
        user_id,
        chat_id,
        page=page,
        page_size=page_size,
        sort_order=sort_order,
        search=search,
        template_id=template_id,
    )
    return to_http(result)


@router.post("/{chat_id}/save")
async def save_resume(
    chat_id: str,
    data: SaveResumeRequest,
    user_id: str = Depends(get_current_user_id),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    return to_http(await service.save(user_id, chat_id, data.resume_data, data.template_id))
