"""
Weekly slot grid projection.

Builds one shared time axis for the seven days starting at ``week_start`` and
assigns every (day, time) cell a status:

    UNAVAILABLE  the cell is not inside one of the day's merged open ranges
    ABSENT       the day falls inside an absence (wins over free/booked)
    BOOKED       an active appointment overlaps the cell
    FREE         otherwise

Appointment details on BOOKED cells are for the owning doctor and admins only;
callers use ``WeekGrid.redacted()`` for everybody else.
"""
from collections.abc import Sequence
from datetime import date, datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel

from medvisit.models.appointment import Appointment
from medvisit.models.schedule import Absence, AvailabilityRule
from medvisit.scheduling.availability import is_absent, resolve_day_ranges
from medvisit.scheduling.timegrid import (
    MinuteRange,
    day_of_week,
    minutes_to_time,
    overlaps,
    week_days,
    ymd,
)


class SlotStatus(StrEnum):
    UNAVAILABLE = "UNAVAILABLE"
    ABSENT = "ABSENT"
    BOOKED = "BOOKED"
    FREE = "FREE"


class SlotCell(BaseModel):
    time: str
    status: SlotStatus
    is_past: bool
    appointment_id: int | None = None
    visit_type: str | None = None
    patient_snapshot: dict | None = None
    notes_for_doctor: str | None = None


class DayColumn(BaseModel):
    date: str
    dow: int
    is_today: bool
    is_absent: bool
    booked_count: int
    cells: list[SlotCell]


class WeekGrid(BaseModel):
    doctor_id: int
    week_start: str
    slot_minutes: int
    time_axis: list[str]
    days: list[DayColumn]

    def redacted(self) -> "WeekGrid":
        """Copy without appointment details; statuses are kept."""
        days = [
            day.model_copy(
                update={
                    "cells": [
                        SlotCell(time=c.time, status=c.status, is_past=c.is_past) for c in day.cells
                    ]
                }
            )
            for day in self.days
        ]
        return self.model_copy(update={"days": days})


def build_time_axis(day_ranges: Sequence[Sequence[MinuteRange]], slot_minutes: int) -> list[int]:
    """Slot start minutes from the earliest open minute while a whole slot fits."""
    flat = [r for ranges in day_ranges for r in ranges]
    if not flat:
        return []
    global_min = min(r.start_min for r in flat)
    global_max = max(r.end_min for r in flat)
    return list(range(global_min, global_max - slot_minutes + 1, slot_minutes))


def _cell_for(
    day: date,
    start_min: int,
    slot_minutes: int,
    ranges: Sequence[MinuteRange],
    absent: bool,
    appointments: Sequence[Appointment],
    now: datetime,
) -> SlotCell:
    end_min = start_min + slot_minutes
    slot_start = datetime(day.year, day.month, day.day) + timedelta(minutes=start_min)
    slot_end = slot_start + timedelta(minutes=slot_minutes)
    cell = SlotCell(
        time=minutes_to_time(start_min),
        status=SlotStatus.UNAVAILABLE,
        is_past=slot_end < now,
    )
    if not any(r.contains(start_min, end_min) for r in ranges):
        return cell
    if absent:
        cell.status = SlotStatus.ABSENT
        return cell
    # Earliest-starting overlap supplies the details; keep this order stable
    for appt in appointments:
        if overlaps(slot_start, slot_end, appt.start_at, appt.end_at):
            cell.status = SlotStatus.BOOKED
            cell.appointment_id = appt.id
            cell.visit_type = appt.visit_type
            cell.patient_snapshot = appt.patient_snapshot
            cell.notes_for_doctor = appt.notes_for_doctor
            return cell
    cell.status = SlotStatus.FREE
    return cell


def project_week(
    doctor_id: int,
    week_start: date,
    slot_minutes: int,
    rules: Sequence[AvailabilityRule],
    absences: Sequence[Absence],
    appointments: Sequence[Appointment],
    now: datetime,
) -> WeekGrid:
    """
    Project the doctor's week into a slot grid.

    ``appointments`` must already be limited to active ones (not cancelled)
    intersecting the week; they are matched in start order.
    """
    days = week_days(week_start)
    day_ranges = [resolve_day_ranges(rules, ymd(d)) for d in days]
    axis = build_time_axis(day_ranges, slot_minutes)
    grid = WeekGrid(
        doctor_id=doctor_id,
        week_start=ymd(week_start),
        slot_minutes=slot_minutes,
        time_axis=[minutes_to_time(m) for m in axis],
        days=[],
    )
    if not any(day_ranges):
        return grid

    ordered = sorted(appointments, key=lambda a: a.start_at)
    today = ymd(now)
    for d, ranges in zip(days, day_ranges):
        day = ymd(d)
        absent = is_absent(absences, day)
        grid.days.append(
            DayColumn(
                date=day,
                dow=int(day_of_week(d)),
                is_today=day == today,
                is_absent=absent,
                booked_count=sum(1 for a in ordered if ymd(a.start_at) == day),
                cells=[_cell_for(d, m, slot_minutes, ranges, absent, ordered, now) for m in axis],
            )
        )
    return grid
