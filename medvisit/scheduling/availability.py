"""
Availability resolution for a single calendar day.

Works on already-loaded rules and absences (anything with the attributes of
``AvailabilityRule`` / ``Absence``) so a week view loads them once per request.
"""
from collections.abc import Iterable, Sequence

from medvisit.models.schedule import Absence, AvailabilityRule, RuleKind
from medvisit.scheduling.timegrid import (
    MinuteRange,
    date_of,
    day_of_week,
    in_date_range,
    merge_ranges,
    time_to_minutes,
)


def rule_applies(rule: AvailabilityRule, day: str) -> bool:
    """Whether ``rule`` offers hours on ``day`` ("YYYY-MM-DD")."""
    if rule.kind == RuleKind.ONE_TIME:
        return rule.date == day
    if not rule.date_from or not rule.date_to:
        return False
    if not in_date_range(day, rule.date_from, rule.date_to):
        return False
    return day_of_week(date_of(day)) in (rule.days_of_week or ())


def rule_ranges(rule: AvailabilityRule) -> list[MinuteRange]:
    return [
        MinuteRange(time_to_minutes(tr["start"]), time_to_minutes(tr["end"]))
        for tr in rule.time_ranges
    ]


def resolve_day_ranges(rules: Iterable[AvailabilityRule], day: str) -> list[MinuteRange]:
    """Merged open minute-ranges for ``day``; empty if no rule applies."""
    collected: list[MinuteRange] = []
    for rule in rules:
        if rule_applies(rule, day):
            collected.extend(rule_ranges(rule))
    return merge_ranges(collected)


def is_absent(absences: Iterable[Absence], day: str) -> bool:
    return any(in_date_range(day, a.date_from, a.date_to) for a in absences)


def fits_single_rule(
    rules: Sequence[AvailabilityRule], day: str, start_min: int, end_min: int
) -> bool:
    """
    Whether ``[start_min, end_min)`` lies inside one time range of one rule
    applicable on ``day``.

    Unlike the weekly grid, which tests cells against the merged union of all
    rules, a reservation must fit a single contiguous range as it was offered.
    """
    return any(
        r.contains(start_min, end_min)
        for rule in rules
        if rule_applies(rule, day)
        for r in rule_ranges(rule)
    )
