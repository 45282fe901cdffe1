from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

from ..enums import MembershipTier, ServiceKind
from ..identity import IdentityContext
from ..pagination import Page, page_bounds
from ..ports.advisory_repo import AdvisoryRecord, AdvisoryRepository
from ..ports.ai_provider import Advisor
from ..ports.audit_logger import AuditLogger
from .usage_quota_service import UsageQuotaService, UsageSummary
from ...exceptions import InvalidRequest

logger = logging.getLogger(__name__)


@dataclass
class AdvisoryOutcome:
    kind: ServiceKind
    result: Dict[str, Any]
    record_id: Optional[str]
    usage_count: int
    limit: Optional[int]
    remaining: Optional[int]


@dataclass
class AdvisoryService:
    """Metered AI flow: authorize, call the advisor, record usage, persist the result."""

    advisor: Advisor
    quota: UsageQuotaService
    repo: AdvisoryRepository
    audit: Optional[AuditLogger] = None

    def diagnose(self, identity: IdentityContext, input_text: str, input_image: Optional[str] = None) -> AdvisoryOutcome:
        if not input_text or not input_text.strip():
            raise InvalidRequest("Symptoms description is required")

        auth = self.quota.authorize(identity.user_id, ServiceKind.DIAGNOSIS, identity.membership_tier)
        result = self.advisor.diagnose(input_text, input_image)
        self.quota.record(identity.user_id, ServiceKind.DIAGNOSIS)

        record = self._persist(
            lambda: self.repo.save_diagnosis(identity.user_id, input_text, input_image, result),
            identity, ServiceKind.DIAGNOSIS,
        )
        return self._outcome(identity, ServiceKind.DIAGNOSIS, result, record, auth.limit, auth.remaining)

    def analyze_drug(self, identity: IdentityContext, drug_name: Optional[str] = None, drug_image: Optional[str] = None) -> AdvisoryOutcome:
        if not drug_name and not drug_image:
            raise InvalidRequest("Either drug name or drug image is required")

        auth = self.quota.authorize(identity.user_id, ServiceKind.DRUG_ANALYSIS, identity.membership_tier)
        result = self.advisor.analyze_drug(drug_name, drug_image)
        self.quota.record(identity.user_id, ServiceKind.DRUG_ANALYSIS)

        record = self._persist(
            lambda: self.repo.save_drug_analysis(identity.user_id, drug_name or result.get("drug_name"), drug_image, result),
            identity, ServiceKind.DRUG_ANALYSIS,
        )
        return self._outcome(identity, ServiceKind.DRUG_ANALYSIS, result, record, auth.limit, auth.remaining)

    def history(self, identity: IdentityContext, kind: Optional[str] = None, page: int = 1, limit: int = 10) -> Page[AdvisoryRecord]:
        if kind is not None:
            try:
                kind = ServiceKind(kind).value
            except ValueError:
                raise InvalidRequest(f"Invalid type. Must be one of: {[k.value for k in ServiceKind]}")
        offset, limit = page_bounds(page, limit)
        items = self.repo.list_for_user(identity.user_id, kind=kind, offset=offset, limit=limit)
        return Page(items=items, total=self.repo.count_for_user(identity.user_id, kind=kind), page=page, limit=limit)

    def usage_stats(self, identity: IdentityContext) -> UsageSummary:
        return self.quota.usage_summary(identity.user_id, identity.membership_tier)

    def _persist(self, save, identity: IdentityContext, kind: ServiceKind) -> Optional[AdvisoryRecord]:
        # The result is already paid for; a failed save must not fail the request
        try:
            return save()
        except Exception:
            logger.exception(f"Error saving {kind.value} result for user {identity.user_id}")
            return None

    def _outcome(self, identity: IdentityContext, kind: ServiceKind, result: Dict[str, Any], record: Optional[AdvisoryRecord], limit: Optional[int], remaining: Optional[int]) -> AdvisoryOutcome:
        usage_count = self.quota.used_this_month(identity.user_id, kind)
        if self.audit is not None:
            self.audit.log(f"ai.{kind.value}", identity.user_id, resource_id=record.id if record else None,
                           details={"usage_count": usage_count, "tier": MembershipTier(identity.membership_tier).value})
        return AdvisoryOutcome(
            kind=kind,
            result=result,
            record_id=record.id if record else None,
            usage_count=usage_count,
            limit=limit,
            remaining=remaining,
        )
