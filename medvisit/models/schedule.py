from datetime import datetime
from enum import StrEnum

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from medvisit.models.appointment import _utc_naive_now


class RuleKind(StrEnum):
    RECURRING = "RECURRING"
    ONE_TIME = "ONE_TIME"


class TimeRangeData(SQLModel):
    start: str  # HH:MM
    end: str


class AvailabilityRule(SQLModel, table=True):
    __tablename__ = "availability_rules"
    id: int | None = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    kind: str = Field(max_length=16)
    # RECURRING
    date_from: str | None = Field(default=None, max_length=10)
    date_to: str | None = Field(default=None, max_length=10)
    days_of_week: list[int] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    # ONE_TIME
    date: str | None = Field(default=None, max_length=10)
    time_ranges: list[dict] = Field(sa_column=Column(JSON, nullable=False))
    slot_minutes: int = 30
    created_at: datetime = Field(default_factory=_utc_naive_now)


class AvailabilityRulePublic(SQLModel):
    id: int
    doctor_id: int
    kind: RuleKind
    date_from: str | None = None
    date_to: str | None = None
    days_of_week: list[int] | None = None
    date: str | None = None
    time_ranges: list[TimeRangeData]
    slot_minutes: int
    created_at: datetime


class Absence(SQLModel, table=True):
    __tablename__ = "absences"
    id: int | None = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    date_from: str = Field(max_length=10)
    date_to: str = Field(max_length=10)
    reason: str | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now)


class AbsencePublic(SQLModel):
    id: int
    doctor_id: int
    date_from: str
    date_to: str
    reason: str | None = None
    created_at: datetime
