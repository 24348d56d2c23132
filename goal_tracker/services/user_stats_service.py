from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple
import logging

from pydantic import ValidationError

from goal_tracker.schemas.user_stats import Achievement, AchievementType, UserStats
from goal_tracker.services.local_store import LocalStore
from goal_tracker.utils.dates import utcnow

logger = logging.getLogger(__name__)

DEFAULT_ACHIEVEMENTS = [
    Achievement(id="first-checkin", title="First Steps",
                description="Complete your first daily check-in", icon="🌱",
                type=AchievementType.STREAK, requirement=1),
    Achievement(id="streak-3", title="Building Momentum",
                description="Maintain a 3-day check-in streak", icon="🔥",
                type=AchievementType.STREAK, requirement=3),
    Achievement(id="streak-7", title="Week Warrior",
                description="Achieve a 7-day check-in streak", icon="⚡",
                type=AchievementType.STREAK, requirement=7),
    Achievement(id="streak-30", title="Mindful Master",
                description="Maintain a 30-day check-in streak", icon="🏆",
                type=AchievementType.STREAK, requirement=30),
    Achievement(id="goals-10", title="Goal Getter",
                description="Complete 10 total goals", icon="🎯",
                type=AchievementType.GOALS, requirement=10),
    Achievement(id="goals-50", title="Achievement Hunter",
                description="Complete 50 total goals", icon="🌟",
                type=AchievementType.GOALS, requirement=50),
    Achievement(id="time-100", title="Time Keeper",
                description="Log 100 hours of focused time", icon="⏰",
                type=AchievementType.TIME, requirement=6000),  # minutes
]


def stats_key(user_id: str) -> str:
    return f"userStats_{user_id}"


def _progress_for(achievement: Achievement, stats: UserStats) -> Optional[int]:
    if achievement.type == AchievementType.STREAK:
        return stats.currentStreak
    if achievement.type == AchievementType.GOALS:
        return stats.totalGoalsCompleted
    if achievement.type == AchievementType.TIME:
        return stats.totalTimeLogged
    # special achievements have no threshold
    return None


class UserStatsService:
    """Daily check-in streaks and threshold achievements, one record per user."""

    def __init__(self, local_store: LocalStore):
        self.local_store = local_store

    def load_stats(self, user_id: str) -> UserStats:
        raw = self.local_store.load_json(stats_key(user_id), None)
        if raw is None:
            return UserStats()
        try:
            return UserStats.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Malformed stats for user {user_id}, starting fresh: {e}")
            return UserStats()

    def save_stats(self, user_id: str, stats: UserStats) -> None:
        self.local_store.save_json(stats_key(user_id), stats.model_dump(mode="json"))

    @staticmethod
    def can_check_in(stats: UserStats, today: Optional[date] = None) -> bool:
        today = today or utcnow().date()
        return stats.lastCheckIn is None or stats.lastCheckIn.date() != today

    def check_in(self, user_id: str, now: Optional[datetime] = None) -> UserStats:
        """Record today's check-in. Checking in twice on one day changes nothing."""
        now = now or utcnow()
        stats = self.load_stats(user_id)
        if not self.can_check_in(stats, now.date()):
            return stats

        streak = 1
        if stats.lastCheckIn is not None and stats.lastCheckIn.date() == now.date() - timedelta(days=1):
            streak = stats.currentStreak + 1

        stats = stats.model_copy(update={
            "currentStreak": streak,
            "longestStreak": max(stats.longestStreak, streak),
            "totalCheckIns": stats.totalCheckIns + 1,
            "lastCheckIn": now,
        })
        self.save_stats(user_id, stats)
        logger.info(f"User {user_id} checked in, streak {streak}")
        return stats

    def evaluate_achievements(self, user_id: str, now: Optional[datetime] = None) -> Tuple[UserStats, List[Achievement]]:
        """Unlock every achievement whose threshold is met; returns the new stats and what unlocked."""
        stats = self.load_stats(user_id)
        current = stats.achievements or [a.model_copy() for a in DEFAULT_ACHIEVEMENTS]
        unlocked_now = []
        updated = []
        for achievement in current:
            progress = _progress_for(achievement, stats)
            if not achievement.isUnlocked and progress is not None and progress >= achievement.requirement:
                achievement = achievement.model_copy(update={
                    "isUnlocked": True,
                    "unlockedAt": now or utcnow(),
                })
                unlocked_now.append(achievement)
            updated.append(achievement)

        if unlocked_now:
            stats = stats.model_copy(update={"achievements": updated})
            self.save_stats(user_id, stats)
            logger.info(f"User {user_id} unlocked {[a.id for a in unlocked_now]}")
        return stats, unlocked_now

    def record_progress(self, user_id: str, goals_completed: int = 0, minutes_logged: int = 0) -> UserStats:
        """Add to the lifetime counters the goal and time achievements are measured against."""
        stats = self.load_stats(user_id)
        stats = stats.model_copy(update={
            "totalGoalsCompleted": max(stats.totalGoalsCompleted + goals_completed, 0),
            "totalTimeLogged": stats.totalTimeLogged + max(minutes_logged, 0),
        })
        self.save_stats(user_id, stats)
        return stats
