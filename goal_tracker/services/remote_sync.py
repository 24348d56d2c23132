import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait as futures_wait
from typing import Any, Callable, Dict, List, Optional

import httpx
from pydantic import ValidationError

from goal_tracker.core.config import API_BASE_URL, REMOTE_SYNC_TIMEOUT
from goal_tracker.schemas.goals import DayData, Goal
from goal_tracker.utils.dates import DateLike, format_date_key

logger = logging.getLogger("goal_tracker.remote_sync")


class RemoteSyncError(Exception):
    """A call to the remote store failed (transport error or non-2xx status)."""


class RemoteSyncClient:
    """Client for the remote store's /api endpoints."""

    def __init__(self, base_url: str = API_BASE_URL, client: Optional[httpx.Client] = None,
                 timeout: float = REMOTE_SYNC_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def _call(self, method: str, endpoint: str, payload: Optional[dict] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self.client.request(
                method,
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise RemoteSyncError(f"{method} {url} failed: {e}") from e

        if resp.is_error:
            raise RemoteSyncError(f"API call failed: {resp.status_code} {resp.reason_phrase}")
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteSyncError(f"{method} {url} returned invalid JSON") from e

    @staticmethod
    def _goal_payload(goal: Goal, user_id: str, date: DateLike) -> dict:
        payload = goal.model_dump(mode="json")
        payload["userId"] = user_id
        payload["date"] = format_date_key(date)
        return payload

    def save_goal(self, goal: Goal, user_id: str, date: DateLike) -> None:
        self._call("POST", "/goals", self._goal_payload(goal, user_id, date))

    def get_goals_for_date(self, user_id: str, date: DateLike) -> List[Goal]:
        body = self._call("GET", f"/goals/{user_id}/{format_date_key(date)}")
        try:
            return [Goal.model_validate(g) for g in body.get("goals") or []]
        except ValidationError as e:
            raise RemoteSyncError(f"Malformed goals in response: {e}") from e

    def update_goal(self, goal: Goal, user_id: str, date: DateLike) -> None:
        self._call("PUT", f"/goals/{goal.id}", self._goal_payload(goal, user_id, date))

    def delete_goal(self, goal_id: str, user_id: str) -> None:
        self._call("DELETE", f"/goals/{goal_id}", {"userId": user_id})

    def get_all_user_data(self, user_id: str) -> Dict[str, DayData]:
        body = self._call("GET", f"/user-data/{user_id}")
        data = {}
        for date_key, value in (body.get("data") or {}).items():
            try:
                data[date_key] = DayData.model_validate(value)
            except ValidationError as e:
                logger.warning(f"Skipping malformed remote day data {date_key}: {e}")
        return data

    def save_day_data(self, day_data: DayData, user_id: str) -> None:
        payload = day_data.model_dump(mode="json")
        payload["userId"] = user_id
        self._call("POST", "/day-data", payload)


class BackgroundSync:
    """Runs remote mirror calls on a single background worker.

    Tasks go out one at a time in submit order, so a later write to the same
    document always lands after an earlier one. The outcome is only logged;
    nothing is ever raised back to the caller that submitted the task. With
    ``detached=False`` tasks run inline, which keeps scripts and tests
    deterministic.
    """

    def __init__(self, detached: bool = True):
        self.detached = detached
        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: List[Future] = []
        self._lock = threading.Lock()

    def _run(self, description: str, func: Callable, args: tuple) -> None:
        try:
            func(*args)
            logger.info(f"Remote sync succeeded: {description}")
        except Exception as e:
            logger.error(f"Remote sync failed: {description}: {e}")

    def submit(self, description: str, func: Callable, *args) -> Optional[Future]:
        if not self.detached:
            self._run(description, func, args)
            return None
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="remote-sync")
            future = self._executor.submit(self._run, description, func, args)
            self._futures = [f for f in self._futures if not f.done()]
            self._futures.append(future)
        return future

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until every submitted task has finished or the timeout passes."""
        with self._lock:
            pending = list(self._futures)
        futures_wait(pending, timeout=timeout)
        with self._lock:
            self._futures = [f for f in self._futures if not f.done()]

    def shutdown(self) -> None:
        """Drop tasks that have not started and stop the worker."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)
