import logging
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from resume_chat.config import settings
from resume_chat.core.security import decode_access_token
from resume_chat.database import get_db
from resume_chat.errors import QuotaExceeded
from resume_chat.services import quota_tracker
from resume_chat.services.ai_orchestrator import ResumeAIService, build_resume_ai
from resume_chat.services.benefits import (
    CHAT_SESSION_LIMIT,
    DAILY_TOKEN_LIMIT,
    BenefitsProvider,
    StaticBenefitsProvider,
)
from resume_chat.services.chat_enhancement_service import ChatEnhancementService

logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """User id from the bearer JWT `sub` claim. Tokens are issued elsewhere."""
    if not credentials:
        logger.info("Auth failed: missing bearer credentials")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    user_id = decode_access_token(credentials.credentials)
    if not user_id:
        logger.info("Auth failed: invalid or expired token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return user_id


@lru_cache
def get_resume_ai() -> ResumeAIService:
    # Composed once per process.
    return build_resume_ai(settings)


@lru_cache
def get_benefits_provider() -> BenefitsProvider:
    return StaticBenefitsProvider()


def get_chat_service(
    db: Session = Depends(get_db),
    ai: ResumeAIService = Depends(get_resume_ai),
) -> ChatEnhancementService:
    return ChatEnhancementService(db, ai)


def check_token_quota(db: Session, benefits: BenefitsProvider, user_id: str, message: str) -> None:
    """Reject an enhance request that would push today's usage over the plan limit."""
    limit = benefits.get_user_benefits(user_id).get(DAILY_TOKEN_LIMIT)
    if limit is None:
        return
    used = quota_tracker.daily_token_usage(db, user_id)
    if used + len(message) > limit:
        logger.info("Daily token limit reached: user=%s used=%d limit=%d", user_id, used, limit)
        raise QuotaExceeded("Daily token limit reached. Upgrade your plan or try again tomorrow.")


def check_session_quota(db: Session, benefits: BenefitsProvider, user_id: str) -> None:
    """Reject a request that would open one more chat than the plan allows."""
    limit = benefits.get_user_benefits(user_id).get(CHAT_SESSION_LIMIT)
    if limit is None:
        return
    active = quota_tracker.active_chat_session_count(db, user_id)
    if active >= limit:
        logger.info("Chat session limit reached: user=%s active=%d limit=%d", user_id, active, limit)
        raise QuotaExceeded("Chat session limit reached. Delete a chat or upgrade your plan.")


def require_session_quota(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    benefits: BenefitsProvider = Depends(get_benefits_provider),
) -> None:
    check_session_quota(db, benefits, user_id)
