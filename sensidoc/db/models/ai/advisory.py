# sensidoc/db/models/ai/advisory.py
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....application.clock import utc_now


class DiagnosisRecord(SQLModel, table=True):
    __tablename__ = "diagnosis"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    patient_id: str = Field(foreign_key="users.id", index=True)
    input_text: str
    input_image: Optional[str] = None
    ai_response: str  # JSON
    condition: Optional[str] = None
    confidence_level: Optional[float] = None
    recommendations: str = Field(default="[]")  # JSON list
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime, index=True)


class DrugAnalysisRecord(SQLModel, table=True):
    __tablename__ = "drug_analysis"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    drug_name: Optional[str] = None
    drug_image: Optional[str] = None
    analysis_result: str  # JSON
    uses: str = Field(default="[]")
    side_effects: str = Field(default="[]")
    dosage: Optional[str] = None
    warnings: str = Field(default="[]")
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime, index=True)
