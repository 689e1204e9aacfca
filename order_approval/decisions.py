from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator

from .models import Role


class ApproveDecision(BaseModel):
    comment: Optional[str] = None

    # Technologist only: production date the deadline is counted from
    manufacturing_term: Optional[date] = None

    # Overrides the acting role's business-day count for the next step
    business_days: Optional[int] = None

    @field_validator("business_days")
    @classmethod
    def _positive_days(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("business_days must be positive")
        return v


class RejectDecision(BaseModel):
    recipient_name: Optional[str] = None
    recipient_role: Optional[Role] = None
    comment: str
    business_days: Optional[int] = None

    @field_validator("recipient_name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("comment")
    @classmethod
    def _comment_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("comment is required when sending an order back")
        return v

    @field_validator("business_days")
    @classmethod
    def _positive_days(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v <= 0:
            raise ValueError("business_days must be positive")
        return v
