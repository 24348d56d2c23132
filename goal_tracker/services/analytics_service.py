from datetime import date, timedelta
from typing import Dict, List, Optional
from pydantic import BaseModel

from goal_tracker.schemas.goals import Category, DayData
from goal_tracker.utils.dates import to_date

TIME_RANGES = {"7d": 7, "30d": 30, "90d": 90, "all": None}


class DaySummary(BaseModel):
    goals: int
    completedGoals: int
    completionRate: int  # percent
    loggedHours: float
    targetHours: float
    progressRate: int  # percent, capped at 100


class PerformancePoint(DaySummary):
    date: date


class CategoryStats(BaseModel):
    category: Category
    goals: int = 0
    hours: float = 0
    completed: int = 0
    completionRate: int = 0


class Insights(BaseModel):
    averageCompletion: int
    averageProgress: int
    totalHours: float
    totalGoals: int
    totalCompleted: int


def format_time(minutes: int) -> str:
    hours, mins = divmod(int(minutes), 60)
    return f"{hours}h {mins}m"


def _percent(part: float, whole: float) -> int:
    return round(part / whole * 100) if whole > 0 else 0


def day_summary(day: DayData) -> DaySummary:
    target_hours = sum(g.targetHours for g in day.goals)
    return DaySummary(
        goals=len(day.goals),
        completedGoals=day.completedGoals,
        completionRate=_percent(day.completedGoals, len(day.goals)),
        loggedHours=round(day.totalLoggedHours, 1),
        targetHours=round(target_hours, 1),
        progressRate=min(_percent(day.totalLoggedHours, target_hours), 100),
    )


def performance_series(all_data: Dict[str, DayData], time_range: str = "30d",
                       today: Optional[date] = None) -> List[PerformancePoint]:
    """One point per stored day inside the window, oldest first."""
    if time_range not in TIME_RANGES:
        raise ValueError(f"Unknown time range: {time_range}")
    days = TIME_RANGES[time_range]
    cutoff = None
    if days is not None:
        cutoff = (today or date.today()) - timedelta(days=days)

    points = []
    for key in sorted(all_data):
        day_date = to_date(key)
        if cutoff is not None and day_date < cutoff:
            continue
        summary = day_summary(all_data[key])
        points.append(PerformancePoint(date=day_date, **summary.model_dump()))
    return points


def category_breakdown(all_data: Dict[str, DayData]) -> Dict[Category, CategoryStats]:
    """Goal-days, hours and completions per category; every category is present."""
    stats = {category: CategoryStats(category=category) for category in Category}
    for day in all_data.values():
        for goal in day.goals:
            entry = stats[goal.category]
            entry.goals += 1
            entry.hours += sum(e.duration / 60 for e in goal.timeEntries if e.date == day.date)
            if goal.completed:
                entry.completed += 1
    for entry in stats.values():
        entry.hours = round(entry.hours, 1)
        entry.completionRate = _percent(entry.completed, entry.goals)
    return stats


def insights(points: List[PerformancePoint]) -> Optional[Insights]:
    if not points:
        return None
    return Insights(
        averageCompletion=round(sum(p.completionRate for p in points) / len(points)),
        averageProgress=round(sum(p.progressRate for p in points) / len(points)),
        totalHours=round(sum(p.loggedHours for p in points), 1),
        totalGoals=sum(p.goals for p in points),
        totalCompleted=sum(p.completedGoals for p in points),
    )
