import json
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from .....db.models import DiagnosisRecord, DrugAnalysisRecord
from .....application.enums import ServiceKind
from .....application.ports.advisory_repo import AdvisoryRecord, AdvisoryRepository


def _as_json_list(value: Any) -> str:
    if value is None:
        return "[]"
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value))
    return json.dumps([value])


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class SqlAdvisoryRepository(AdvisoryRepository):
    def __init__(self, session: Session):
        self.session = session

    def _diagnosis_to_record(self, d: DiagnosisRecord) -> AdvisoryRecord:
        return AdvisoryRecord(
            id=d.id,
            user_id=d.patient_id,
            kind=ServiceKind.DIAGNOSIS.value,
            input_text=d.input_text,
            input_image=d.input_image,
            result=json.loads(d.ai_response),
            created_at=d.created_at,
        )

    def _drug_to_record(self, d: DrugAnalysisRecord) -> AdvisoryRecord:
        return AdvisoryRecord(
            id=d.id,
            user_id=d.user_id,
            kind=ServiceKind.DRUG_ANALYSIS.value,
            input_text=d.drug_name,
            input_image=d.drug_image,
            result=json.loads(d.analysis_result),
            created_at=d.created_at,
        )

    def save_diagnosis(self, user_id: str, input_text: str, input_image: Optional[str], result: Dict[str, Any]) -> AdvisoryRecord:
        row = DiagnosisRecord(
            patient_id=user_id,
            input_text=input_text,
            input_image=input_image,
            ai_response=json.dumps(result),
            condition=result.get("condition"),
            confidence_level=_as_float(result.get("confidence_level")),
            recommendations=_as_json_list(result.get("recommendations")),
        )
        self._save(row)
        return self._diagnosis_to_record(row)

    def save_drug_analysis(self, user_id: str, drug_name: Optional[str], drug_image: Optional[str], result: Dict[str, Any]) -> AdvisoryRecord:
        dosage = result.get("dosage")
        row = DrugAnalysisRecord(
            user_id=user_id,
            drug_name=drug_name,
            drug_image=drug_image,
            analysis_result=json.dumps(result),
            uses=_as_json_list(result.get("uses")),
            side_effects=_as_json_list(result.get("side_effects")),
            dosage=str(dosage) if dosage is not None else None,
            warnings=_as_json_list(result.get("warnings")),
        )
        self._save(row)
        return self._drug_to_record(row)

    def list_for_user(self, user_id: str, kind: Optional[str] = None, offset: int = 0, limit: int = 10) -> List[AdvisoryRecord]:
        window = offset + limit
        records: List[AdvisoryRecord] = []
        if kind in (None, ServiceKind.DIAGNOSIS.value):
            rows = self.session.exec(
                select(DiagnosisRecord)
                .where(DiagnosisRecord.patient_id == user_id)
                .order_by(DiagnosisRecord.created_at.desc())
                .limit(window)
            ).all()
            records.extend(self._diagnosis_to_record(r) for r in rows)
        if kind in (None, ServiceKind.DRUG_ANALYSIS.value):
            rows = self.session.exec(
                select(DrugAnalysisRecord)
                .where(DrugAnalysisRecord.user_id == user_id)
                .order_by(DrugAnalysisRecord.created_at.desc())
                .limit(window)
            ).all()
            records.extend(self._drug_to_record(r) for r in rows)
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[offset:window]

    def count_for_user(self, user_id: str, kind: Optional[str] = None) -> int:
        total = 0
        if kind in (None, ServiceKind.DIAGNOSIS.value):
            total += self.session.exec(
                select(func.count(DiagnosisRecord.id)).where(DiagnosisRecord.patient_id == user_id)
            ).one()
        if kind in (None, ServiceKind.DRUG_ANALYSIS.value):
            total += self.session.exec(
                select(func.count(DrugAnalysisRecord.id)).where(DrugAnalysisRecord.user_id == user_id)
            ).one()
        return total

    def _save(self, row) -> None:
        self.session.add(row)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(row)
