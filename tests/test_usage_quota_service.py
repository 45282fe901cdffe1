from datetime import datetime, timedelta, timezone

import pytest

from sensidoc.application.enums import MembershipTier, ServiceKind
from sensidoc.application.services.usage_quota_service import UsageQuotaService
from sensidoc.exceptions import QuotaExceeded
from sensidoc.infrastructure.quota.memory_usage_store import InMemoryUsageStore


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class BrokenStore:
    def add(self, user_id, service_kind, occurred_at):
        raise RuntimeError("db down")

    def count(self, user_id, service_kind, start, end):
        return 0


def make_service(now=datetime(2025, 3, 15, 12, 0)):
    clock = Clock(now)
    return UsageQuotaService(store=InMemoryUsageStore(), free_limit=3, clock=clock), clock


def test_free_tier_remaining_counts_down_then_blocks():
    svc, _ = make_service()
    seen = []
    for _ in range(3):
        auth = svc.authorize("u1", ServiceKind.DIAGNOSIS, MembershipTier.FREE)
        seen.append(auth.remaining)
        svc.record("u1", ServiceKind.DIAGNOSIS)
    assert seen == [2, 1, 0]

    with pytest.raises(QuotaExceeded) as exc:
        svc.authorize("u1", ServiceKind.DIAGNOSIS, MembershipTier.FREE)
    assert exc.value.remaining == 0
    assert exc.value.status_code == 429
    assert exc.value.data["remaining"] == 0
    assert exc.value.data["usage_count"] == 3


def test_authorize_without_record_does_not_consume():
    svc, _ = make_service()
    for _ in range(5):
        assert svc.authorize("u1", "diagnosis", "free").remaining == 2


def test_services_are_counted_separately():
    svc, _ = make_service()
    for _ in range(3):
        svc.record("u1", ServiceKind.DIAGNOSIS)
    with pytest.raises(QuotaExceeded):
        svc.authorize("u1", ServiceKind.DIAGNOSIS, MembershipTier.FREE)
    assert svc.authorize("u1", ServiceKind.DRUG_ANALYSIS, MembershipTier.FREE).remaining == 2
    assert svc.authorize("u2", ServiceKind.DIAGNOSIS, MembershipTier.FREE).remaining == 2


def test_premium_is_unlimited():
    svc, _ = make_service()
    for _ in range(10):
        svc.record("u1", ServiceKind.DRUG_ANALYSIS)
    auth = svc.authorize("u1", ServiceKind.DRUG_ANALYSIS, MembershipTier.PREMIUM)
    assert auth.unlimited
    assert auth.remaining is None
    assert auth.used == 10


def test_usage_at_month_end_is_excluded_next_month():
    svc, clock = make_service(now=datetime(2025, 3, 31, 23, 59, 59, 999999))
    for _ in range(3):
        svc.record("u1", ServiceKind.DIAGNOSIS)
    with pytest.raises(QuotaExceeded):
        svc.authorize("u1", ServiceKind.DIAGNOSIS, MembershipTier.FREE)

    clock.now = datetime(2025, 4, 1)
    assert svc.authorize("u1", ServiceKind.DIAGNOSIS, MembershipTier.FREE).remaining == 2


def test_previous_month_usage_not_counted():
    svc, _ = make_service()
    svc.record("u1", ServiceKind.DIAGNOSIS, occurred_at=datetime(2025, 2, 28, 23, 0))
    svc.record("u1", ServiceKind.DIAGNOSIS, occurred_at=datetime(2025, 3, 1, 0, 0))
    assert svc.used_this_month("u1", ServiceKind.DIAGNOSIS) == 1


def test_aware_timestamps_are_normalized_to_utc():
    svc, _ = make_service(now=datetime(2025, 4, 1, 2, 0))
    # 2025-04-01 01:00 in UTC+2 is still March in UTC
    svc.record("u1", ServiceKind.DIAGNOSIS, occurred_at=datetime(2025, 4, 1, 1, 0, tzinfo=timezone(timedelta(hours=2))))
    assert svc.used_this_month("u1", ServiceKind.DIAGNOSIS) == 0


def test_record_failure_is_logged_not_raised(caplog):
    svc = UsageQuotaService(store=BrokenStore(), free_limit=3)
    svc.record("u1", ServiceKind.DIAGNOSIS)
    assert "Failed to record diagnosis usage" in caplog.text


def test_usage_summary_free_and_premium():
    svc, _ = make_service()
    svc.record("u1", ServiceKind.DIAGNOSIS)
    svc.record("u1", ServiceKind.DRUG_ANALYSIS)
    svc.record("u1", ServiceKind.DRUG_ANALYSIS)

    free = svc.usage_summary("u1", MembershipTier.FREE)
    assert free.month == "2025-03"
    assert (free.diagnosis_used, free.drug_analysis_used) == (1, 2)
    assert free.limits == {"diagnosis": 3, "drug_analysis": 3}
    assert free.remaining == {"diagnosis": 2, "drug_analysis": 1}

    premium = svc.usage_summary("u1", MembershipTier.PREMIUM)
    assert premium.limits is None
    assert premium.remaining is None
    assert premium.drug_analysis_used == 2
