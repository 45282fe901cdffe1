from typing import Any, Dict, Optional, Protocol


class AIProvider(Protocol):
    def generate_text(self, prompt: str) -> str:
        """Raise UpstreamUnavailable / UpstreamTimeout on failure."""
        ...


class Advisor(Protocol):
    def diagnose(self, symptoms: str, image_ref: Optional[str] = None) -> Dict[str, Any]:
        ...

    def analyze_drug(self, drug_name: Optional[str] = None, image_ref: Optional[str] = None) -> Dict[str, Any]:
        ...
