from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Union
from datetime import datetime
import logging

from ..clock import as_utc, month_window, utc_now
from ..enums import MembershipTier, ServiceKind
from ..ports.usage_repo import UsageStore
from ...exceptions import QuotaExceeded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaAuthorization:
    service_kind: ServiceKind
    used: int
    limit: Optional[int]
    # Allowance left once the authorized call is consumed; None means unlimited
    remaining: Optional[int]

    @property
    def unlimited(self) -> bool:
        return self.limit is None


@dataclass(frozen=True)
class UsageSummary:
    month: str
    diagnosis_used: int
    drug_analysis_used: int
    limits: Optional[Dict[str, int]]
    remaining: Optional[Dict[str, int]]


@dataclass
class UsageQuotaService:
    """Monthly ceilings for metered AI services.

    ``authorize`` runs before the metered call and ``record`` only after it
    succeeds, so a failed call never burns quota. The two are not atomic:
    concurrent authorizations near the ceiling can both pass, which allows a
    small overrun of the free-tier limit.
    """

    store: UsageStore
    free_limit: int = 3
    clock: Callable[[], datetime] = field(default=utc_now)

    def authorize(self, user_id: str, service_kind: Union[ServiceKind, str], tier: Union[MembershipTier, str]) -> QuotaAuthorization:
        kind = ServiceKind(service_kind)
        used = self._used(user_id, kind)
        if MembershipTier(tier) is MembershipTier.PREMIUM:
            return QuotaAuthorization(service_kind=kind, used=used, limit=None, remaining=None)

        if used >= self.free_limit:
            logger.info(f"Quota exceeded for user {user_id} on {kind.value}: {used}/{self.free_limit}")
            raise QuotaExceeded(kind.value, used, self.free_limit)
        return QuotaAuthorization(service_kind=kind, used=used, limit=self.free_limit, remaining=self.free_limit - used - 1)

    def record(self, user_id: str, service_kind: Union[ServiceKind, str], occurred_at: Optional[datetime] = None) -> None:
        kind = ServiceKind(service_kind)
        occurred_at = as_utc(occurred_at) if occurred_at is not None else self.clock()
        try:
            self.store.add(user_id, kind.value, occurred_at)
        except Exception:
            logger.exception(f"Failed to record {kind.value} usage for user {user_id}")

    def used_this_month(self, user_id: str, service_kind: Union[ServiceKind, str]) -> int:
        return self._used(user_id, ServiceKind(service_kind))

    def usage_summary(self, user_id: str, tier: Union[MembershipTier, str]) -> UsageSummary:
        start, _ = month_window(self.clock())
        diagnosis = self._used(user_id, ServiceKind.DIAGNOSIS)
        drug = self._used(user_id, ServiceKind.DRUG_ANALYSIS)

        limits = None
        remaining = None
        if MembershipTier(tier) is MembershipTier.FREE:
            limits = {ServiceKind.DIAGNOSIS.value: self.free_limit, ServiceKind.DRUG_ANALYSIS.value: self.free_limit}
            remaining = {
                ServiceKind.DIAGNOSIS.value: max(0, self.free_limit - diagnosis),
                ServiceKind.DRUG_ANALYSIS.value: max(0, self.free_limit - drug),
            }
        return UsageSummary(
            month=start.strftime("%Y-%m"),
            diagnosis_used=diagnosis,
            drug_analysis_used=drug,
            limits=limits,
            remaining=remaining,
        )

    def _used(self, user_id: str, kind: ServiceKind) -> int:
        start, end = month_window(self.clock())
        return self.store.count(user_id, kind.value, start, end)
