"""Lead record handed to the notification sink."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

NOT_PROVIDED = "Not provided"


class LeadRecord(BaseModel):
    """Flat lead summary.

    Every attribute is always present; missing facts are explicit None so
    consumers can render "Not provided".
    """

    model_config = ConfigDict(frozen=True)

    full_name: Optional[str]
    contact_phone: Optional[str]
    contact_email: Optional[str]
    user_budget: Optional[int]
    estimated_cost: Optional[int]
    priority_tier: Optional[str]
    service: Optional[str]
    area_m2: Optional[float]
    postal_code: Optional[str]
    start_timing: Optional[str]
    soil_note: Optional[str]
    has_excavator_access: Optional[bool]

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict that keeps None values."""
        return self.model_dump(mode="json")

    def to_display_dict(self) -> Dict[str, str]:
        """Human-readable values with "Not provided" for gaps."""
        display: Dict[str, str] = {}
        for key, value in self.model_dump().items():
            if value is None:
                display[key] = NOT_PROVIDED
            elif isinstance(value, bool):
                display[key] = "Yes" if value else "No"
            elif key in ("user_budget", "estimated_cost"):
                display[key] = f"£{value:,}"
            elif key == "area_m2":
                display[key] = f"{value:.1f}m²"
            else:
                display[key] = str(value)
        return display
