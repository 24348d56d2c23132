from sqlalchemy import and_, or_
from sqlalchemy.orm import Session
from typing import Dict, List
import logging

from goal_tracker.models.goals import DayDataDocument, GoalDocument
from goal_tracker.schemas.goals import DayData, Goal, RemoteDayData, RemoteGoal

logger = logging.getLogger(__name__)


def _covers(document: dict, date_key: str) -> bool:
    return document.get("startDate", "") <= date_key <= document.get("endDate", "")


class RemoteStoreService:
    """Server-side persistence of mirrored goals and day aggregates.

    Documents are stored whole (replace semantics); dates are kept as
    YYYY-MM-DD strings so range checks compare lexicographically.
    """

    def __init__(self, db: Session):
        self.db = db

    def upsert_goal(self, goal: RemoteGoal) -> None:
        document = goal.model_dump(mode="json")
        row = self.db.get(GoalDocument, (goal.id, goal.userId))
        if row is None:
            row = GoalDocument(id=goal.id, user_id=goal.userId)
            self.db.add(row)
        row.date = document.get("date")
        row.start_date = document["startDate"]
        row.end_date = document["endDate"]
        row.document = document
        self.db.commit()

    def goals_for_date(self, user_id: str, date_key: str) -> List[dict]:
        """Goals issued on the date or whose range covers it."""
        rows = self.db.query(GoalDocument).filter(
            GoalDocument.user_id == user_id,
            or_(
                GoalDocument.date == date_key,
                and_(GoalDocument.start_date <= date_key, GoalDocument.end_date >= date_key),
            ),
        ).all()
        return [row.document for row in rows]

    def update_goal(self, goal_id: str, goal: RemoteGoal) -> bool:
        """Merge the given fields into an existing goal; unknown goals are left alone."""
        row = self.db.get(GoalDocument, (goal_id, goal.userId))
        if row is None:
            logger.info(f"Update for unknown goal {goal_id} ignored")
            return False
        document = dict(row.document)
        document.update(goal.model_dump(mode="json", exclude_unset=True))
        document["id"] = goal_id
        row.document = document
        row.date = document.get("date")
        row.start_date = document["startDate"]
        row.end_date = document["endDate"]
        self.db.commit()
        return True

    def delete_goal(self, goal_id: str, user_id: str) -> bool:
        row = self.db.get(GoalDocument, (goal_id, user_id))
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    def user_data(self, user_id: str) -> Dict[str, DayData]:
        """Every stored day, with its goals re-selected from the user's goal documents."""
        goals = [row.document for row in self.db.query(GoalDocument).filter(GoalDocument.user_id == user_id)]
        days = self.db.query(DayDataDocument).filter(DayDataDocument.user_id == user_id).all()

        data = {}
        for day in days:
            data[day.date] = DayData(
                date=day.date,
                goals=[Goal.model_validate(g) for g in goals if _covers(g, day.date)],
                totalLoggedHours=day.document.get("totalLoggedHours") or 0,
                completedGoals=day.document.get("completedGoals") or 0,
                checkedIn=day.document.get("checkedIn"),
            )
        return data

    def upsert_day_data(self, day_data: RemoteDayData) -> None:
        document = day_data.model_dump(mode="json")
        date_key = document["date"]
        row = self.db.get(DayDataDocument, (date_key, day_data.userId))
        if row is None:
            row = DayDataDocument(date=date_key, user_id=day_data.userId)
            self.db.add(row)
        row.document = document
        self.db.commit()
