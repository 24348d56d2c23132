"""
Per-process application context.

One ``AppContext`` is built at startup for the signed-in user and handed to
whatever drives the UI; it owns the storage, the services and the remote
client, and is closed when the process ends.
"""
from datetime import date, datetime
from typing import Optional
import logging

import httpx

from goal_tracker.core.config import API_BASE_URL, REMOTE_SYNC_ENABLED
from goal_tracker.schemas.goals import DayData, Goal, GoalCreate
from goal_tracker.schemas.user_stats import UserStats
from goal_tracker.services.goals_service import GoalsService, session_minutes
from goal_tracker.services.local_store import LocalStore
from goal_tracker.services.remote_sync import BackgroundSync, RemoteSyncClient
from goal_tracker.services.storage import KeyValueStore, SqlStorage
from goal_tracker.services.todo_service import TodoService
from goal_tracker.services.user_stats_service import UserStatsService
from goal_tracker.utils.dates import DateLike

logger = logging.getLogger(__name__)


class AppContext:
    def __init__(self, user_id: str, storage: KeyValueStore, remote: Optional[RemoteSyncClient] = None,
                 background: Optional[BackgroundSync] = None):
        self.user_id = user_id
        self.local_store = LocalStore(storage)
        self.remote = remote
        self.background = background or BackgroundSync()
        self.goals = GoalsService(self.local_store, remote=remote, background=self.background)
        self.stats = UserStatsService(self.local_store)
        self.todos = TodoService(self.local_store)

    @classmethod
    def create(cls, user_id: str, storage: Optional[KeyValueStore] = None,
               api_base_url: str = API_BASE_URL, http_client: Optional[httpx.Client] = None,
               sync_enabled: bool = REMOTE_SYNC_ENABLED, detached: bool = True) -> "AppContext":
        remote = RemoteSyncClient(api_base_url, client=http_client) if sync_enabled else None
        return cls(
            user_id,
            storage if storage is not None else SqlStorage(),
            remote=remote,
            background=BackgroundSync(detached=detached),
        )

    # Session

    def login(self) -> bool:
        """Hydrate local storage from the remote store; never fails the login."""
        logger.info(f"Starting session for user {self.user_id}")
        return self.goals.load_user_data_from_remote(self.user_id)

    def close(self, timeout: Optional[float] = None) -> None:
        self.background.wait(timeout)
        self.background.shutdown()
        if self.remote is not None:
            self.remote.close()

    # Theme

    @property
    def theme(self) -> str:
        return self.local_store.get_theme()

    def set_theme(self, name: str) -> bool:
        return self.local_store.set_theme(name)

    # Goals, scoped to the signed-in user

    def add_goal(self, goal_data: GoalCreate) -> Goal:
        return self.goals.create_goal(goal_data, self.user_id)

    def update_goal(self, goal: Goal) -> Goal:
        return self.goals.save_goal(goal, self.user_id)

    def delete_goal(self, goal_id: str) -> bool:
        return self.goals.delete_goal(goal_id, self.user_id)

    def day(self, day: DateLike) -> DayData:
        return self.goals.get_day_data(day, self.user_id)

    def log_session(self, goal_id: str, start_time: datetime, end_time: datetime,
                    entry_date: Optional[date] = None, note: Optional[str] = None) -> Goal:
        goal = self.goals.add_time_entry(goal_id, start_time, end_time, self.user_id,
                                         entry_date=entry_date, note=note)
        self.stats.record_progress(self.user_id, minutes_logged=session_minutes(start_time, end_time))
        self.stats.evaluate_achievements(self.user_id)
        return goal

    def toggle_complete(self, goal_id: str) -> Goal:
        goal = self.goals.toggle_complete(goal_id, self.user_id)
        self.stats.record_progress(self.user_id, goals_completed=1 if goal.completed else -1)
        self.stats.evaluate_achievements(self.user_id)
        return goal

    def check_in(self) -> UserStats:
        self.stats.check_in(self.user_id)
        stats, _ = self.stats.evaluate_achievements(self.user_id)
        return stats
