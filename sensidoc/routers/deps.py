import logging
from functools import lru_cache

from fastapi import BackgroundTasks, Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from ..application.enums import MembershipTier, Role
from ..application.identity import IdentityContext
from ..application.ports.rate_limiter import RateLimiter
from ..application.ports.usage_repo import UsageStore
from ..application.services.advisory_service import AdvisoryService
from ..application.services.appointments_service import AppointmentsService
from ..application.services.usage_quota_service import UsageQuotaService
from ..config import settings
from ..db.session import get_session
from ..exceptions import NotAuthenticated, RateLimited
from ..infrastructure.ai.advisory_client import AdvisoryClient
from ..infrastructure.ai.gemini_provider import GeminiProvider
from ..infrastructure.audit.std_logger import StdAuditLogger
from ..infrastructure.locks.memory_slot_locks import InMemorySlotLocks
from ..infrastructure.notifications.background_sink import BackgroundNotificationSink
from ..infrastructure.notifications.db_notification_sink import DbNotificationSink
from ..infrastructure.persistence.sqlalchemy.repositories.advisory_repository_sql import SqlAdvisoryRepository
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.usage_repository_sql import SqlUsageStore
from ..infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from ..infrastructure.quota.memory_usage_store import InMemoryUsageStore
from ..infrastructure.quota.redis_usage_store import RedisUsageStore
from ..infrastructure.rate_limit.memory_rate_limiter import InMemoryRateLimiter
from ..infrastructure.rate_limit.redis_rate_limiter import RedisRateLimiter
from ..utils import decode_jwt_token

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer(auto_error=False)

# Process-wide: every request must contend on the same slot locks
_slot_locks = InMemorySlotLocks()
_audit_logger = StdAuditLogger()


def get_identity(
    credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> IdentityContext:
    if not credentials or not credentials.credentials:
        raise NotAuthenticated("Access token required")
    payload = decode_jwt_token(credentials.credentials)
    if not payload:
        logger.warning("JWT token decode failed - invalid or expired token")
        raise NotAuthenticated("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise NotAuthenticated("Invalid token: missing user ID")

    user = SqlUserRepository(session).get_by_id(str(user_id))
    if not user or not user.is_active:
        raise NotAuthenticated("Invalid token")
    try:
        return IdentityContext(
            user_id=user.id,
            role=Role(user.role),
            membership_tier=MembershipTier(user.membership_type),
        )
    except ValueError:
        logger.error(f"User {user.id} has unknown role or membership: {user.role}/{user.membership_type}")
        raise NotAuthenticated("Invalid account")


def get_appointments_service(
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
) -> AppointmentsService:
    return AppointmentsService(
        repo=SqlAppointmentsRepository(session),
        slot_locks=_slot_locks,
        notifier=BackgroundNotificationSink(background_tasks, DbNotificationSink(session.get_bind())),
        audit=_audit_logger,
    )


@lru_cache()
def _memory_usage_store() -> InMemoryUsageStore:
    return InMemoryUsageStore()


@lru_cache()
def _redis_usage_store() -> RedisUsageStore:
    if not settings.REDIS_URL:
        raise RuntimeError("USAGE_STORE_BACKEND=redis requires REDIS_URL")
    return RedisUsageStore(settings.REDIS_URL, prefix=settings.REDIS_USAGE_PREFIX)


def get_usage_store(session: Session = Depends(get_session)) -> UsageStore:
    backend = settings.USAGE_STORE_BACKEND.lower()
    if backend == "redis":
        return _redis_usage_store()
    if backend == "memory":
        return _memory_usage_store()
    return SqlUsageStore(session)


def get_quota_service(store: UsageStore = Depends(get_usage_store)) -> UsageQuotaService:
    return UsageQuotaService(store=store, free_limit=settings.FREE_TIER_MONTHLY_LIMIT)


@lru_cache()
def get_advisor() -> AdvisoryClient:
    return AdvisoryClient(GeminiProvider())


def get_advisory_service(
    session: Session = Depends(get_session),
    quota: UsageQuotaService = Depends(get_quota_service),
    advisor: AdvisoryClient = Depends(get_advisor),
) -> AdvisoryService:
    return AdvisoryService(
        advisor=advisor,
        quota=quota,
        repo=SqlAdvisoryRepository(session),
        audit=_audit_logger,
    )


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    if settings.RATE_LIMIT_BACKEND == "redis":
        if not settings.REDIS_URL:
            raise RuntimeError("RATE_LIMIT_BACKEND=redis requires REDIS_URL")
        return RedisRateLimiter(settings.REDIS_URL, prefix=settings.REDIS_RATE_LIMIT_PREFIX)
    return InMemoryRateLimiter()


class RateLimit:
    """Per-client request throttle, keyed by scope and client address."""

    def __init__(self, scope: str, max_requests: int, window_seconds: int) -> None:
        self.scope = scope
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    def __call__(self, request: Request, limiter: RateLimiter = Depends(get_rate_limiter)) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return
        client = request.client.host if request.client else "unknown"
        if not limiter.allow(f"{self.scope}:{client}", self.max_requests, self.window_seconds):
            logger.warning(f"Rate limit '{self.scope}' exceeded for {client}")
            raise RateLimited(retry_after=self.window_seconds)


general_rate_limit = RateLimit("general", settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SEC)
ai_rate_limit = RateLimit("ai", settings.AI_RATE_LIMIT_MAX_REQUESTS, settings.AI_RATE_LIMIT_WINDOW_SEC)
