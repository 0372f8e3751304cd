from datetime import date, datetime

from medvisit.models.appointment import AppointmentStatus
from medvisit.models.schedule import Absence
from medvisit.scheduling.availability import fits_single_rule
from medvisit.scheduling.slots import SlotStatus, build_time_axis, project_week
from medvisit.scheduling.timegrid import MinuteRange

from conftest import make_appointment, weekday_rule

WEEK = date(2024, 1, 1)
NOW = datetime(2023, 12, 31, 8, 0)
WEDNESDAY = 2


def _grid(rules, absences=(), appointments=(), slot_minutes=30, now=NOW):
    return project_week(1, WEEK, slot_minutes, rules, list(absences), list(appointments), now)


def _statuses(grid, day_index):
    return {c.time: c.status for c in grid.days[day_index].cells}


def test_weekday_rule_yields_six_free_slots_on_wednesday():
    grid = _grid([weekday_rule(1, "2024-01-01", "2024-12-31")])
    assert grid.time_axis == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]
    wednesday = grid.days[WEDNESDAY]
    assert wednesday.date == "2024-01-03"
    assert wednesday.dow == 3
    assert [c.status for c in wednesday.cells] == [SlotStatus.FREE] * 6
    # Weekend columns exist but have no open hours
    assert set(_statuses(grid, 5).values()) == {SlotStatus.UNAVAILABLE}


def test_confirmed_appointment_books_its_cell_only():
    appt = make_appointment(1, 42, datetime(2024, 1, 3, 10, 0))
    appt.id = 7
    grid = _grid([weekday_rule(1, "2024-01-01", "2024-12-31")], appointments=[appt])
    statuses = _statuses(grid, WEDNESDAY)
    assert statuses["10:00"] == SlotStatus.BOOKED
    for t in ("09:00", "09:30", "11:00", "11:30"):
        assert statuses[t] == SlotStatus.FREE
    assert statuses["10:30"] == SlotStatus.FREE
    booked = grid.days[WEDNESDAY].cells[2]
    assert booked.appointment_id == 7
    assert booked.patient_snapshot["full_name"] == "Ann Patient"
    assert grid.days[WEDNESDAY].booked_count == 1


def test_absence_marks_open_cells_absent():
    appt = make_appointment(1, 42, datetime(2024, 1, 3, 10, 0))
    absence = Absence(doctor_id=1, date_from="2024-01-03", date_to="2024-01-03")
    grid = _grid([weekday_rule(1, "2024-01-01", "2024-12-31")], absences=[absence], appointments=[appt])
    wednesday = grid.days[WEDNESDAY]
    assert wednesday.is_absent
    assert {c.status for c in wednesday.cells} == {SlotStatus.ABSENT}
    assert _statuses(grid, 3)["10:00"] == SlotStatus.FREE


def test_no_rules_gives_empty_grid():
    grid = _grid([])
    assert grid.time_axis == []
    assert grid.days == []
    assert grid.week_start == "2024-01-01"


def test_ranges_shorter_than_a_slot_keep_day_columns():
    appt = make_appointment(1, 42, datetime(2024, 1, 3, 9, 0), minutes=20)
    absence = Absence(doctor_id=1, date_from="2024-01-04", date_to="2024-01-04")
    grid = _grid(
        [weekday_rule(1, "2024-01-01", "2024-12-31", start="09:00", end="09:20")],
        absences=[absence],
        appointments=[appt],
    )
    assert grid.time_axis == []
    assert [d.dow for d in grid.days] == [1, 2, 3, 4, 5, 6, 7]
    assert all(d.cells == [] for d in grid.days)
    assert grid.days[WEDNESDAY].booked_count == 1
    assert grid.days[3].is_absent


def test_cells_outside_a_days_ranges_are_unavailable():
    rules = [
        weekday_rule(1, "2024-01-01", "2024-12-31", days=(1,)),
        weekday_rule(1, "2024-01-01", "2024-12-31", start="13:00", end="15:00", days=(3,)),
    ]
    grid = _grid(rules, slot_minutes=60)
    assert grid.time_axis == ["09:00", "10:00", "11:00", "12:00", "13:00", "14:00"]
    monday, wednesday = _statuses(grid, 0), _statuses(grid, WEDNESDAY)
    assert monday["11:00"] == SlotStatus.FREE
    assert monday["13:00"] == SlotStatus.UNAVAILABLE
    assert wednesday["09:00"] == SlotStatus.UNAVAILABLE
    assert wednesday["14:00"] == SlotStatus.FREE


def test_past_cells_are_flagged():
    grid = _grid([weekday_rule(1, "2024-01-01", "2024-12-31")], now=datetime(2024, 1, 3, 10, 0))
    cells = {c.time: c for c in grid.days[WEDNESDAY].cells}
    assert cells["09:00"].is_past
    assert not cells["09:30"].is_past  # ends exactly now
    assert not cells["10:00"].is_past
    assert grid.days[WEDNESDAY].is_today


def test_grid_free_cell_can_straddle_rules_that_a_reservation_cannot():
    rules = [
        weekday_rule(1, "2024-01-01", "2024-12-31", start="09:00", end="09:30", days=(3,)),
        weekday_rule(1, "2024-01-01", "2024-12-31", start="09:30", end="10:00", days=(3,)),
    ]
    grid = _grid(rules, slot_minutes=60)
    assert _statuses(grid, WEDNESDAY) == {"09:00": SlotStatus.FREE}
    assert not fits_single_rule(rules, "2024-01-03", 540, 600)


def test_redacted_grid_hides_appointment_details():
    appt = make_appointment(1, 42, datetime(2024, 1, 3, 10, 0), status=AppointmentStatus.RESERVED)
    appt.id = 3
    appt.notes_for_doctor = "allergic to penicillin"
    grid = _grid([weekday_rule(1, "2024-01-01", "2024-12-31")], appointments=[appt]).redacted()
    cell = grid.days[WEDNESDAY].cells[2]
    assert cell.status == SlotStatus.BOOKED
    assert cell.appointment_id is None
    assert cell.patient_snapshot is None
    assert cell.notes_for_doctor is None


def test_time_axis_only_whole_slots():
    assert build_time_axis([[MinuteRange(540, 600)]], 45) == [540]
    assert build_time_axis([[], []], 30) == []
