"""
Database Schemas for SplitEase

Each top-level Pydantic model represents one collection of the persisted
JSON document (User -> "users", PaymentLink -> "paymentLinks", ...).
Fields are snake_case in Python and camelCase on the wire and on disk.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class User(CamelModel):
    id: str = Field(default_factory=new_id)
    name: str = Field(..., description="Display name")
    phone: Optional[str] = Field(None, description="E.164 phone number")
    email: Optional[str] = Field(None, description="Lowercased email address")
    verified: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class VerificationCode(CamelModel):
    contact: str = Field(..., description="Normalized phone or email")
    contact_type: str = Field(..., description="phone or email")
    code: str = Field(..., description="6-digit numeric code")
    expires_at: datetime
    used: bool = False
    name: Optional[str] = Field(None, description="Pending signup name")
    is_signup: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class PayerSnapshot(CamelModel):
    id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None


class ParticipantShare(CamelModel):
    name: str
    email: Optional[str] = None
    amount: float
    payment_link_id: str
    paid: bool = False
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None


class Expense(CamelModel):
    id: str = Field(default_factory=new_id)
    description: str
    amount: float
    paid_by: PayerSnapshot
    split_type: str = Field("equal", description="Only equal splits are implemented")
    participants: List[ParticipantShare] = Field(default_factory=list)
    total_people: int = Field(..., description="Participants plus the payer")
    amount_per_person: float
    created_at: datetime = Field(default_factory=utcnow)


class PaymentLink(CamelModel):
    id: str = Field(default_factory=new_id)
    expense_id: str
    participant_name: str
    participant_email: Optional[str] = None
    amount: float
    description: str
    requester: PayerSnapshot
    used: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    payment_method: Optional[str] = None
