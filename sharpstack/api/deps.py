"""
FastAPI dependencies for authentication, database sessions and engines.
"""

import uuid
from typing import Annotated, AsyncGenerator, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from sharpstack.config import Settings, get_settings
from sharpstack.database import async_session_maker
from sharpstack.engines.criteria import CriteriaRegistry
from sharpstack.engines.insights import InsightsService
from sharpstack.engines.notifications import BackgroundRunner, NotificationTrigger
from sharpstack.engines.training import TrainingSessionService
from sharpstack.kernel.identity import verify_access_token
from sharpstack.kernel.models import User

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that yields database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
) -> User:
    """Get current authenticated user or raise 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_id = uuid.UUID(payload.sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_registry(request: Request) -> CriteriaRegistry:
    return request.app.state.registry


Registry = Annotated[CriteriaRegistry, Depends(get_registry)]


def get_runner(request: Request) -> BackgroundRunner:
    return request.app.state.runner


def get_notification_trigger(request: Request) -> NotificationTrigger:
    return request.app.state.notification_trigger


Runner = Annotated[BackgroundRunner, Depends(get_runner)]
Notifications = Annotated[NotificationTrigger, Depends(get_notification_trigger)]


def get_training_service(
    request: Request,
    db: DbSession,
    registry: Registry,
    settings: AppSettings,
) -> TrainingSessionService:
    return TrainingSessionService(
        db,
        registry,
        settings,
        card_oracle=request.app.state.card_oracle,
        publisher=request.app.state.scoring_pool,
    )


def get_insights_service(
    db: DbSession,
    registry: Registry,
    settings: AppSettings,
) -> InsightsService:
    return InsightsService(db, registry, settings)


TrainingService = Annotated[TrainingSessionService, Depends(get_training_service)]
Insights = Annotated[InsightsService, Depends(get_insights_service)]
