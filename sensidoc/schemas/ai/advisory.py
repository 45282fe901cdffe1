# sensidoc/schemas/ai/advisory.py
from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, Optional
from datetime import datetime

from ...application.enums import MembershipTier, ServiceKind

class DiagnosisRequest(BaseModel):
    input_text: str = Field(min_length=1, max_length=5000)
    input_image: Optional[str] = None

class DrugAnalysisRequest(BaseModel):
    drug_name: Optional[str] = Field(default=None, max_length=200)
    drug_image: Optional[str] = None

    @model_validator(mode="after")
    def require_name_or_image(self):
        if not self.drug_name and not self.drug_image:
            raise ValueError("Either drug name or drug image is required")
        return self

class AdvisoryResponse(BaseModel):
    kind: ServiceKind
    result: Dict[str, Any]
    record_id: Optional[str] = None
    usage_count: int
    limit: Optional[int] = None
    remaining: Optional[int] = None

class UsageStatsResponse(BaseModel):
    membership_type: MembershipTier
    current_month: str
    usage: Dict[str, int]
    limits: Optional[Dict[str, int]] = None
    remaining: Optional[Dict[str, int]] = None

class AdvisoryHistoryItem(BaseModel):
    id: str
    type: ServiceKind
    input_text: Optional[str] = None
    input_image: Optional[str] = None
    result: Dict[str, Any]
    created_at: datetime
