from typing import Optional
from fastapi import APIRouter, Depends, Query
import logging

from ..application.identity import IdentityContext
from ..application.services.advisory_service import AdvisoryOutcome, AdvisoryService
from ..exceptions import create_success_response
from ..schemas.common.common import ErrorResponse
from ..schemas.ai.advisory import (
    AdvisoryHistoryItem,
    AdvisoryResponse,
    DiagnosisRequest,
    DrugAnalysisRequest,
    UsageStatsResponse,
)
from .deps import ai_rate_limit, get_advisory_service, get_identity

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/ai",
    tags=["AI Services"],
    responses={401: {"model": ErrorResponse}, 503: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
)


def _to_response(outcome: AdvisoryOutcome) -> dict:
    return AdvisoryResponse(
        kind=outcome.kind,
        result=outcome.result,
        record_id=outcome.record_id,
        usage_count=outcome.usage_count,
        limit=outcome.limit,
        remaining=outcome.remaining,
    ).model_dump(mode="json")


@router.post("/diagnose", dependencies=[Depends(ai_rate_limit)], responses={429: {"model": ErrorResponse}})
def get_diagnosis(
    body: DiagnosisRequest,
    identity: IdentityContext = Depends(get_identity),
    advisory: AdvisoryService = Depends(get_advisory_service),
):
    outcome = advisory.diagnose(identity, body.input_text, body.input_image)
    return create_success_response(_to_response(outcome), "Diagnosis generated successfully")


@router.post("/drug-analyze", dependencies=[Depends(ai_rate_limit)], responses={429: {"model": ErrorResponse}})
def analyze_drug(
    body: DrugAnalysisRequest,
    identity: IdentityContext = Depends(get_identity),
    advisory: AdvisoryService = Depends(get_advisory_service),
):
    outcome = advisory.analyze_drug(identity, body.drug_name, body.drug_image)
    return create_success_response(_to_response(outcome), "Drug analysis completed successfully")


@router.get("/history")
def get_ai_history(
    type: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    identity: IdentityContext = Depends(get_identity),
    advisory: AdvisoryService = Depends(get_advisory_service),
):
    result = advisory.history(identity, kind=type, page=page, limit=limit)
    items = [
        AdvisoryHistoryItem(
            id=r.id,
            type=r.kind,
            input_text=r.input_text,
            input_image=r.input_image,
            result=r.result,
            created_at=r.created_at,
        ).model_dump(mode="json")
        for r in result.items
    ]
    return create_success_response(items, "AI service history retrieved successfully", pagination=result.meta())


@router.get("/usage-stats")
def get_usage_stats(
    identity: IdentityContext = Depends(get_identity),
    advisory: AdvisoryService = Depends(get_advisory_service),
):
    summary = advisory.usage_stats(identity)
    body = UsageStatsResponse(
        membership_type=identity.membership_tier,
        current_month=summary.month,
        usage={"diagnosis": summary.diagnosis_used, "drug_analysis": summary.drug_analysis_used},
        limits=summary.limits,
        remaining=summary.remaining,
    )
    return create_success_response(body.model_dump(mode="json"), "Usage statistics retrieved successfully")
