from pydantic import BaseModel, Field, model_validator

from medvisit.core.errors import ValidationError
from medvisit.models.schedule import AbsencePublic, AvailabilityRulePublic, RuleKind
from medvisit.scheduling.timegrid import HhMm, IsoDate, Weekday, time_to_minutes


class TimeRange(BaseModel):
    start: HhMm
    end: HhMm

    @model_validator(mode="after")
    def _end_after_start(self) -> "TimeRange":
        if time_to_minutes(self.end) <= time_to_minutes(self.start):
            raise ValidationError(f"Time range {self.start}-{self.end} must end after it starts")
        return self


class AvailabilityRuleCreate(BaseModel):
    kind: RuleKind
    date_from: IsoDate | None = None
    date_to: IsoDate | None = None
    days_of_week: list[Weekday] | None = None
    date: IsoDate | None = None
    time_ranges: list[TimeRange] = Field(min_length=1)
    slot_minutes: int = Field(default=30, ge=10, le=60)

    @model_validator(mode="after")
    def _fields_match_kind(self) -> "AvailabilityRuleCreate":
        if self.kind == RuleKind.ONE_TIME:
            if not self.date:
                raise ValidationError("ONE_TIME rule requires date")
        else:
            if not self.date_from or not self.date_to or not self.days_of_week:
                raise ValidationError("RECURRING rule requires date_from, date_to and days_of_week")
            if self.date_from > self.date_to:
                raise ValidationError("date_from must not be after date_to")
        return self


class AbsenceCreate(BaseModel):
    date_from: IsoDate
    date_to: IsoDate
    reason: str | None = None

    @model_validator(mode="after")
    def _ordered(self) -> "AbsenceCreate":
        if self.date_from > self.date_to:
            raise ValidationError("date_from must not be after date_to")
        return self


class RuleCreated(BaseModel):
    id: int


class AbsenceCreated(BaseModel):
    id: int
    cancelled_appointments: int


class DoctorSchedule(BaseModel):
    doctor_id: int
    rules: list[AvailabilityRulePublic]
    absences: list[AbsencePublic]
