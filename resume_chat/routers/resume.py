import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from resume_chat.config import settings
from resume_chat.database import get_db, run_blocking
from resume_chat.dependencies import (
    check_token_quota,
    get_benefits_provider,
    get_chat_service,
    get_current_user_id,
)
from resume_chat.routers.chat import to_http
from resume_chat.schemas.chat import ResumeEnhanceRequest
from resume_chat.services.benefits import BenefitsProvider
from resume_chat.services.chat_enhancement_service import ChatEnhancementService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/resume", tags=["resume"])


@router.post("/master/upload")
async def upload_master_resume(
    file: UploadFile = File(..., description="Resume as PDF, DOCX, TXT or image"),
    user_id: str = Depends(get_current_user_id),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    """Extract a resume from an uploaded document and store it as the user's master resume."""
    content = await file.read()
    max_bytes = settings.max_resume_upload_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(status_code=413, detail=f"File too large. Max allowed is {settings.max_resume_upload_mb}MB.")
    logger.info("Master resume upload: user=%s file=%s size=%d", user_id, file.filename, len(content))
    return to_http(await service.upload_master_resume(user_id, file.filename or "", content))


@router.get("/master")
async def get_master_resume(
    user_id: str = Depends(get_current_user_id),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    return to_http(await service.get_master_resume(user_id))


@router.post("/enhance")
async def enhance_resume(
    data: ResumeEnhanceRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    benefits: BenefitsProvider = Depends(get_benefits_provider),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    """Enhance a resume with a single instruction, outside any chat."""
    await run_blocking(check_token_quota, db, benefits, user_id, data.message)
    return to_http(await service.enhance_standalone(user_id, data.message, data.resume_data, data.template_id))


@router.get("/history")
async def list_user_history(
    page: int = 1,
    page_size: int = 10,
    user_id: str = Depends(get_current_user_id),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    return to_http(await service.list_user_history(user_id, page, page_size))


@router.get("/history/{history_id}")
async def get_history_entry(
    history_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    return to_http(await service.get_history_detail(user_id, history_id))


@router.get("/usage")
async def get_usage(
    user_id: str = Depends(get_current_user_id),
    benefits: BenefitsProvider = Depends(get_benefits_provider),
    service: ChatEnhancementService = Depends(get_chat_service),
):
    return to_http(await service.usage(user_id, benefits.get_user_benefits(user_id)))
