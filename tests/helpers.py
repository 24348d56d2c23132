from datetime import date, datetime, timezone

from goal_tracker.schemas.goals import Category, Goal, TimeEntry
from goal_tracker.utils.ids import generate_id

CREATED = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def make_goal(title="Read", start="2024-01-10", end=None, **overrides) -> Goal:
    end = end or start
    fields = dict(
        id=generate_id(),
        title=title,
        category=Category.LEARNING,
        targetHours=1,
        loggedHours=0,
        completed=False,
        startDate=date.fromisoformat(start),
        endDate=date.fromisoformat(end),
        isMultiDay=start != end,
        timeEntries=[],
        createdAt=CREATED,
    )
    fields.update(overrides)
    return Goal(**fields)


def make_entry(day="2024-01-10", minutes=30) -> TimeEntry:
    start = datetime.fromisoformat(f"{day}T08:00:00+00:00")
    return TimeEntry(
        id=generate_id(),
        date=date.fromisoformat(day),
        startTime=start,
        endTime=start.replace(minute=minutes % 60, hour=8 + minutes // 60),
        duration=minutes,
    )
