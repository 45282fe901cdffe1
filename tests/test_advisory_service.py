from datetime import datetime
from typing import List

import pytest

from sensidoc.application.enums import MembershipTier, Role
from sensidoc.application.identity import IdentityContext
from sensidoc.application.ports.advisory_repo import AdvisoryRecord
from sensidoc.application.services.advisory_service import AdvisoryService
from sensidoc.application.services.usage_quota_service import UsageQuotaService
from sensidoc.exceptions import InvalidRequest, QuotaExceeded, UpstreamUnavailable
from sensidoc.infrastructure.quota.memory_usage_store import InMemoryUsageStore


NOW = datetime(2025, 3, 15, 12, 0)


class FakeAdvisor:
    def __init__(self):
        self.fail_next = False
        self.calls = 0

    def _maybe_fail(self):
        self.calls += 1
        if self.fail_next:
            self.fail_next = False
            raise UpstreamUnavailable()

    def diagnose(self, symptoms, image_ref=None):
        self._maybe_fail()
        return {"condition": "Cold", "recommendations": ["rest"]}

    def analyze_drug(self, drug_name=None, image_ref=None):
        self._maybe_fail()
        return {"drug_name": drug_name or "Aspirin", "uses": ["pain"]}


class FakeAdvisoryRepo:
    def __init__(self, broken=False):
        self.rows: List[AdvisoryRecord] = []
        self.broken = broken

    def _save(self, user_id, kind, text, image, result):
        if self.broken:
            raise RuntimeError("insert failed")
        rec = AdvisoryRecord(f"r{len(self.rows) + 1}", user_id, kind, text, image, result, NOW)
        self.rows.append(rec)
        return rec

    def save_diagnosis(self, user_id, input_text, input_image, result):
        return self._save(user_id, "diagnosis", input_text, input_image, result)

    def save_drug_analysis(self, user_id, drug_name, drug_image, result):
        return self._save(user_id, "drug_analysis", drug_name, drug_image, result)

    def _matching(self, user_id, kind):
        return [r for r in self.rows if r.user_id == user_id and (kind is None or r.kind == kind)]

    def list_for_user(self, user_id, kind=None, offset=0, limit=10):
        return self._matching(user_id, kind)[offset:offset + limit]

    def count_for_user(self, user_id, kind=None):
        return len(self._matching(user_id, kind))


FREE_USER = IdentityContext("u1", Role.PATIENT, MembershipTier.FREE)
PREMIUM_USER = IdentityContext("u2", Role.PATIENT, MembershipTier.PREMIUM)


def make_service(repo=None):
    advisor = FakeAdvisor()
    quota = UsageQuotaService(store=InMemoryUsageStore(), free_limit=3, clock=lambda: NOW)
    svc = AdvisoryService(advisor=advisor, quota=quota, repo=repo or FakeAdvisoryRepo())
    return svc, advisor


def test_diagnose_records_usage_and_persists_result():
    svc, _ = make_service()
    out = svc.diagnose(FREE_USER, "sneezing")
    assert out.result["condition"] == "Cold"
    assert out.record_id == "r1"
    assert out.usage_count == 1
    assert out.limit == 3
    assert out.remaining == 2


def test_failed_ai_call_does_not_change_quota_sequence():
    svc, advisor = make_service()
    remaining = [svc.diagnose(FREE_USER, "cough").remaining for _ in range(2)]

    advisor.fail_next = True
    with pytest.raises(UpstreamUnavailable):
        svc.diagnose(FREE_USER, "cough")

    remaining.append(svc.diagnose(FREE_USER, "cough").remaining)
    assert remaining == [2, 1, 0]

    calls_before = advisor.calls
    with pytest.raises(QuotaExceeded):
        svc.diagnose(FREE_USER, "cough")
    # the advisor is never reached once the quota is spent
    assert advisor.calls == calls_before


def test_premium_reports_no_limit():
    svc, _ = make_service()
    for _ in range(5):
        out = svc.analyze_drug(PREMIUM_USER, drug_name="Aspirin")
    assert out.limit is None
    assert out.remaining is None
    assert out.usage_count == 5


def test_result_save_failure_still_returns_result():
    svc, _ = make_service(repo=FakeAdvisoryRepo(broken=True))
    out = svc.diagnose(FREE_USER, "itchy eyes")
    assert out.record_id is None
    assert out.usage_count == 1


def test_input_validation():
    svc, advisor = make_service()
    with pytest.raises(InvalidRequest):
        svc.analyze_drug(FREE_USER)
    with pytest.raises(InvalidRequest):
        svc.diagnose(FREE_USER, "   ")
    assert advisor.calls == 0


def test_drug_analysis_uses_identified_name_for_image_only_requests():
    repo = FakeAdvisoryRepo()
    svc, _ = make_service(repo=repo)
    svc.analyze_drug(FREE_USER, drug_image="https://img/pill.png")
    assert repo.rows[0].input_text == "Aspirin"


def test_history_and_usage_stats():
    svc, _ = make_service()
    svc.diagnose(FREE_USER, "a")
    svc.analyze_drug(FREE_USER, drug_name="b")
    svc.diagnose(PREMIUM_USER, "c")

    assert len(svc.history(FREE_USER).items) == 2
    assert [r.kind for r in svc.history(FREE_USER, kind="drug_analysis").items] == ["drug_analysis"]
    second = svc.history(FREE_USER, page=2, limit=1)
    assert len(second.items) == 1
    assert second.meta() == {"page": 2, "limit": 1, "total": 2, "totalPages": 2}
    with pytest.raises(InvalidRequest):
        svc.history(FREE_USER, kind="horoscope")

    stats = svc.usage_stats(FREE_USER)
    assert stats.diagnosis_used == 1
    assert stats.remaining == {"diagnosis": 2, "drug_analysis": 2}
