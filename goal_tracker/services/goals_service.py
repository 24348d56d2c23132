from datetime import date, datetime
from typing import Dict, List, Optional
import logging
import math

from goal_tracker.schemas.goals import DayData, Goal, GoalCreate, TimeEntry
from goal_tracker.services.local_store import LocalStore
from goal_tracker.services.remote_sync import BackgroundSync, RemoteSyncClient, RemoteSyncError
from goal_tracker.services.storage import StorageError
from goal_tracker.utils.dates import DateLike, iter_dates, to_date, today, utcnow
from goal_tracker.utils.ids import generate_id

goals_logger = logging.getLogger("goals_service")


class GoalNotFound(LookupError):
    pass


def session_minutes(start_time: datetime, end_time: datetime) -> int:
    """Whole minutes between two instants, halves rounded up."""
    return int(math.floor((end_time - start_time).total_seconds() / 60 + 0.5))


def build_day_data(day: DateLike, goals: List[Goal]) -> DayData:
    """Derive the aggregate for one calendar day from the full goal list."""
    day = to_date(day)
    active = [g for g in goals if g.covers(day)]
    total_hours = 0.0
    for goal in active:
        for entry in goal.timeEntries:
            if entry.date == day:
                total_hours += entry.duration / 60
    return DayData(
        date=day,
        goals=active,
        totalLoggedHours=total_hours,
        completedGoals=sum(1 for g in active if g.completed),
    )


class GoalsService:
    """Goal repository plus the per-day aggregates derived from it.

    Goals are the source of truth. Day aggregates are a cache rebuilt for
    every date in a goal's range whenever that goal is saved or deleted.
    Local writes come first and their failures propagate; the remote mirror
    runs afterwards in the background and only logs.
    """

    def __init__(self, local_store: LocalStore, remote: Optional[RemoteSyncClient] = None,
                 background: Optional[BackgroundSync] = None):
        self.local_store = local_store
        self.remote = remote
        self.background = background or BackgroundSync()

    # Repository

    def get_all_goals(self, user_id: Optional[str] = None) -> List[Goal]:
        goals = self.local_store.load_goals(user_id)
        goals_logger.debug(f"get_all_goals returning {len(goals)} goals")
        return goals

    def get_goals_for_date(self, day: DateLike, user_id: Optional[str] = None) -> List[Goal]:
        day = to_date(day)
        return [g for g in self.get_all_goals(user_id) if g.covers(day)]

    def get_goal(self, goal_id: str, user_id: Optional[str] = None) -> Optional[Goal]:
        return next((g for g in self.get_all_goals(user_id) if g.id == goal_id), None)

    def save_goal(self, goal: Goal, user_id: Optional[str] = None) -> Goal:
        """Insert or replace a goal and refresh the days it covers.

        Returns the goal as stored; its id differs from the one passed in
        when that id already belongs to an independently created goal.
        """
        if not goal.id or not goal.title:
            raise ValueError("Invalid goal data: missing id or title")

        all_goals = self.get_all_goals(user_id)
        previous = next((g for g in all_goals if g.id == goal.id), None)
        if previous is not None and previous.createdAt != goal.createdAt:
            new_id = generate_id()
            goals_logger.warning(f"ID conflict detected for {goal.id}, regenerating as {new_id}")
            goal = goal.model_copy(update={"id": new_id})
            previous = None

        filtered = [g for g in all_goals if g.id != goal.id]
        filtered.append(goal)
        self.local_store.save_goals(filtered, user_id)

        # Cover the old range too so a narrowed goal leaves no stale days behind
        start, end = goal.startDate, goal.endDate
        if previous is not None:
            start, end = min(start, previous.startDate), max(end, previous.endDate)
        days = self.refresh_day_range(start, end, user_id)

        if user_id:
            self._mirror("save goal", goal.id, self._remote_save_goal, goal, user_id)
            self._mirror_days(days, user_id)

        goals_logger.info(f"Goal {goal.id} saved, {len(days)} days refreshed")
        return goal

    def delete_goal(self, goal_id: str, user_id: Optional[str] = None) -> bool:
        all_goals = self.get_all_goals(user_id)
        goal = next((g for g in all_goals if g.id == goal_id), None)
        if goal is None:
            goals_logger.warning(f"Goal not found for deletion: {goal_id}")
            return False

        self.local_store.save_goals([g for g in all_goals if g.id != goal_id], user_id)
        days = self.refresh_day_range(goal.startDate, goal.endDate, user_id, only_existing=True)

        if user_id:
            self._mirror("delete goal", goal_id, self._remote_delete_goal, goal_id, user_id)
            self._mirror_days(days, user_id)

        goals_logger.info(f"Goal {goal_id} deleted, {len(days)} days refreshed")
        return True

    # Day aggregates

    def refresh_day_range(self, start: DateLike, end: DateLike, user_id: Optional[str] = None,
                          only_existing: bool = False) -> List[DayData]:
        """Recompute and persist the aggregate of every day in [start, end].

        With only_existing, days that have no cached aggregate yet are skipped.
        """
        goals = self.get_all_goals(user_id)
        all_data = self.local_store.load_data(user_id)
        refreshed = []
        for day in iter_dates(start, end):
            key = day.isoformat()
            cached = all_data.get(key)
            if only_existing and cached is None:
                continue
            day_data = build_day_data(day, goals)
            if cached is not None:
                day_data.checkedIn = cached.checkedIn
            all_data[key] = day_data
            refreshed.append(day_data)
        self.local_store.save_data(all_data, user_id)
        return refreshed

    def get_day_data(self, day: DateLike, user_id: Optional[str] = None) -> DayData:
        day = to_date(day)
        cached = self.local_store.load_data(user_id).get(day.isoformat())
        if cached is not None:
            return cached
        return build_day_data(day, self.get_all_goals(user_id))

    def get_all_day_data(self, user_id: Optional[str] = None) -> Dict[str, DayData]:
        return self.local_store.load_data(user_id)

    def save_day_data(self, day_data: DayData, user_id: Optional[str] = None) -> None:
        all_data = self.local_store.load_data(user_id)
        all_data[day_data.date.isoformat()] = day_data
        self.local_store.save_data(all_data, user_id)
        if user_id:
            self._mirror_days([day_data], user_id)

    # Goal lifecycle helpers

    def create_goal(self, goal_data: GoalCreate, user_id: Optional[str] = None) -> Goal:
        goal = Goal(
            **goal_data.model_dump(),
            id=generate_id(),
            loggedHours=0,
            completed=False,
            timeEntries=[],
            createdAt=utcnow(),
        )
        goals_logger.info(f"Creating goal {goal.id} ({goal.title})")
        return self.save_goal(goal, user_id)

    def _require_goal(self, goal_id: str, user_id: Optional[str]) -> Goal:
        goal = self.get_goal(goal_id, user_id)
        if goal is None:
            raise GoalNotFound(f"Goal not found: {goal_id}")
        return goal

    def add_time_entry(self, goal_id: str, start_time: datetime, end_time: datetime,
                       user_id: Optional[str] = None, entry_date: Optional[date] = None,
                       note: Optional[str] = None) -> Goal:
        """Record a finished focus session against a goal."""
        if end_time < start_time:
            raise ValueError("end_time must not be before start_time")
        goal = self._require_goal(goal_id, user_id)
        duration = session_minutes(start_time, end_time)
        entry = TimeEntry(
            id=generate_id(),
            date=entry_date or to_date(start_time),
            startTime=start_time,
            endTime=end_time,
            duration=duration,
            note=note,
        )
        updated = goal.model_copy(update={
            "loggedHours": goal.loggedHours + duration / 60,
            "timeEntries": [*goal.timeEntries, entry],
        })
        return self.save_goal(updated, user_id)

    def toggle_complete(self, goal_id: str, user_id: Optional[str] = None) -> Goal:
        goal = self._require_goal(goal_id, user_id)
        return self.save_goal(goal.model_copy(update={"completed": not goal.completed}), user_id)

    # Remote

    def load_user_data_from_remote(self, user_id: str) -> bool:
        """Best-effort pull of the user's days and the goals they carry; True when local data changed."""
        if self.remote is None:
            return False
        try:
            remote_data = self.remote.get_all_user_data(user_id)
        except RemoteSyncError as e:
            goals_logger.error(f"Failed to load user data from remote, using local storage: {e}")
            return False
        if not remote_data:
            goals_logger.info("No remote data found, using local storage")
            return False

        # Goals carried by the pulled days join the goal list, remote copy wins
        remote_goals: Dict[str, Goal] = {}
        for key in sorted(remote_data):
            for goal in remote_data[key].goals:
                remote_goals[goal.id] = goal
        goals = [remote_goals.pop(g.id, g) for g in self.get_all_goals(user_id)]
        goals.extend(remote_goals.values())

        all_data = self.local_store.load_data(user_id)
        all_data.update(remote_data)
        try:
            self.local_store.save_goals(goals, user_id)
            self.local_store.save_data(all_data, user_id)
        except StorageError as e:
            goals_logger.error(f"Failed to store remote user data locally: {e}")
            return False
        goals_logger.info(f"Loaded {len(remote_data)} days and {len(goals)} goals of user data from remote")
        return True

    def _remote_save_goal(self, goal: Goal, user_id: str) -> None:
        self.remote.save_goal(goal, user_id, today())

    def _remote_delete_goal(self, goal_id: str, user_id: str) -> None:
        self.remote.delete_goal(goal_id, user_id)

    def _mirror(self, action: str, subject: str, func, *args) -> None:
        if self.remote is None:
            return
        self.background.submit(f"{action} {subject}", func, *args)

    def _mirror_days(self, days: List[DayData], user_id: str) -> None:
        if self.remote is None:
            return
        for day in days:
            self.background.submit(f"save day data {day.date}", self.remote.save_day_data, day, user_id)
