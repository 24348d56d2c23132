from typing import List
import logging

from pydantic import ValidationError

from goal_tracker.schemas.user_stats import Priority, TodoItem
from goal_tracker.services.local_store import LocalStore
from goal_tracker.utils.dates import utcnow
from goal_tracker.utils.ids import generate_id

logger = logging.getLogger(__name__)


def todos_key(user_id: str) -> str:
    return f"todos_{user_id}"


class TodoService:
    def __init__(self, local_store: LocalStore):
        self.local_store = local_store

    def list_todos(self, user_id: str) -> List[TodoItem]:
        raw = self.local_store.load_json(todos_key(user_id), [])
        if not isinstance(raw, list):
            return []
        todos = []
        for value in raw:
            try:
                todos.append(TodoItem.model_validate(value))
            except ValidationError as e:
                logger.warning(f"Skipping malformed todo for user {user_id}: {e}")
        return todos

    def save_todos(self, user_id: str, todos: List[TodoItem]) -> None:
        self.local_store.save_json(todos_key(user_id), [t.model_dump(mode="json") for t in todos])

    def add_todo(self, user_id: str, text: str, priority: Priority = Priority.MEDIUM) -> TodoItem:
        text = text.strip()
        if not text:
            raise ValueError("Todo text must not be empty")
        todo = TodoItem(id=generate_id(), text=text, completed=False,
                        createdAt=utcnow(), priority=priority)
        self.save_todos(user_id, [*self.list_todos(user_id), todo])
        return todo

    def toggle_todo(self, user_id: str, todo_id: str) -> List[TodoItem]:
        todos = [
            t.model_copy(update={"completed": not t.completed}) if t.id == todo_id else t
            for t in self.list_todos(user_id)
        ]
        self.save_todos(user_id, todos)
        return todos

    def delete_todo(self, user_id: str, todo_id: str) -> List[TodoItem]:
        todos = [t for t in self.list_todos(user_id) if t.id != todo_id]
        self.save_todos(user_id, todos)
        return todos
