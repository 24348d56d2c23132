import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from goal_tracker.schemas.goals import DayData, Goal
from goal_tracker.services.storage import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

ANONYMOUS_DATA_KEY = "goal-tracker-data"
ANONYMOUS_GOALS_KEY = "goal-tracker-goals"
THEME_KEY = "mindful-goals-theme"

THEMES = ("zen", "forest", "ocean", "sunset", "lavender", "rose")
DEFAULT_THEME = "zen"


def user_storage_key(user_id: str, suffix: str = "") -> str:
    return f"goal-tracker-{user_id}-{suffix}" if suffix else f"goal-tracker-{user_id}"


def data_key(user_id: Optional[str]) -> str:
    return user_storage_key(user_id) if user_id else ANONYMOUS_DATA_KEY


def goals_key(user_id: Optional[str]) -> str:
    return user_storage_key(user_id, "goals") if user_id else ANONYMOUS_GOALS_KEY


class LocalStore:
    """JSON documents on top of a KeyValueStore.

    Reads never raise: a missing key gives the default, corrupt JSON is logged
    and read as the default, and a single malformed record is skipped.
    Writes raise StorageError so callers never believe unsaved data was saved.
    """

    def __init__(self, storage: KeyValueStore):
        self.storage = storage

    def load_json(self, key: str, default: Any) -> Any:
        try:
            raw = self.storage.get_item(key)
        except StorageError as e:
            logger.error(f"Error reading {key}: {e}")
            return default
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt JSON under {key}, using default: {e}")
            return default

    def save_json(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Error serializing {key}: {e}")
            raise StorageError(f"Could not serialize {key!r}: {e}") from e
        try:
            self.storage.set_item(key, payload)
        except StorageError:
            logger.exception(f"Error saving {key}")
            raise

    # Day aggregates

    def load_data(self, user_id: Optional[str] = None) -> Dict[str, DayData]:
        key = data_key(user_id)
        raw = self.load_json(key, {})
        if not isinstance(raw, dict):
            logger.error(f"Expected an object under {key}, got {type(raw).__name__}")
            return {}
        data = {}
        for date_key, value in raw.items():
            try:
                data[date_key] = DayData.model_validate(value)
            except ValidationError as e:
                logger.warning(f"Skipping malformed day data {date_key} under {key}: {e}")
        return data

    def save_data(self, data: Dict[str, DayData], user_id: Optional[str] = None) -> None:
        self.save_json(
            data_key(user_id),
            {date_key: day.model_dump(mode="json") for date_key, day in data.items()},
        )
        logger.debug(f"Saved {len(data)} day records")

    # Goals

    def load_goals(self, user_id: Optional[str] = None) -> List[Goal]:
        key = goals_key(user_id)
        raw = self.load_json(key, [])
        if not isinstance(raw, list):
            logger.error(f"Expected a list under {key}, got {type(raw).__name__}")
            return []
        goals = []
        for value in raw:
            try:
                goals.append(Goal.model_validate(value))
            except ValidationError as e:
                logger.warning(f"Skipping malformed goal under {key}: {e}")
        return goals

    def save_goals(self, goals: List[Goal], user_id: Optional[str] = None) -> None:
        self.save_json(goals_key(user_id), [goal.model_dump(mode="json") for goal in goals])

    # Theme preference (global, not per user)

    def get_theme(self) -> str:
        try:
            theme = self.storage.get_item(THEME_KEY)
        except StorageError as e:
            logger.error(f"Error reading theme: {e}")
            return DEFAULT_THEME
        return theme if theme in THEMES else DEFAULT_THEME

    def set_theme(self, name: str) -> bool:
        if name not in THEMES:
            logger.warning(f"Ignoring unknown theme {name}")
            return False
        self.storage.set_item(THEME_KEY, name)
        return True
