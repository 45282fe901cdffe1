from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol
from datetime import datetime


@dataclass
class AdvisoryRecord:
    id: str
    user_id: str
    kind: str
    input_text: Optional[str]
    input_image: Optional[str]
    result: Dict[str, Any]
    created_at: datetime


class AdvisoryRepository(Protocol):
    def save_diagnosis(self, user_id: str, input_text: str, input_image: Optional[str], result: Dict[str, Any]) -> AdvisoryRecord:
        ...

    def save_drug_analysis(self, user_id: str, drug_name: Optional[str], drug_image: Optional[str], result: Dict[str, Any]) -> AdvisoryRecord:
        ...

    def list_for_user(self, user_id: str, kind: Optional[str] = None, offset: int = 0, limit: int = 10) -> List[AdvisoryRecord]:
        ...

    def count_for_user(self, user_id: str, kind: Optional[str] = None) -> int:
        ...
