from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from goal_tracker.schemas.goals import (
    DeleteGoalRequest,
    GoalsListResponse,
    RemoteDayData,
    RemoteGoal,
    SuccessResponse,
    UserDataResponse,
)
from goal_tracker.services.remote_store_service import RemoteStoreService
from goal_tracker.utils.dates import format_date_key
import logging

logger = logging.getLogger("goal_tracker.routes.goals")

router = APIRouter()


def get_db(request: Request):
    if not getattr(request.app.state, "db_available", False):
        raise HTTPException(status_code=503, detail="Database connection not available")
    db = request.app.state.SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@router.post("/goals", response_model=SuccessResponse)
def save_goal(goal: RemoteGoal, db: Session = Depends(get_db)):
    """Insert or replace a goal, keyed by (id, userId)"""
    try:
        RemoteStoreService(db).upsert_goal(goal)
        return SuccessResponse()
    except Exception:
        logger.exception(f"Error saving goal {goal.id}")
        raise HTTPException(status_code=500, detail="Failed to save goal")


@router.get("/goals/{user_id}/{date}", response_model=GoalsListResponse)
def get_goals_for_date(user_id: str, date: str, db: Session = Depends(get_db)):
    """Goals written on the date or active on it"""
    try:
        date_key = format_date_key(date)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid date format. Use YYYY-MM-DD: {date}")
    try:
        goals = RemoteStoreService(db).goals_for_date(user_id, date_key)
        return GoalsListResponse(goals=goals)
    except Exception:
        logger.exception(f"Error fetching goals for {date_key}")
        raise HTTPException(status_code=500, detail="Failed to fetch goals")


@router.put("/goals/{goal_id}", response_model=SuccessResponse)
def update_goal(goal_id: str, goal: RemoteGoal, db: Session = Depends(get_db)):
    """Merge fields into an existing goal"""
    try:
        RemoteStoreService(db).update_goal(goal_id, goal)
        return SuccessResponse()
    except Exception:
        logger.exception(f"Error updating goal {goal_id}")
        raise HTTPException(status_code=500, detail="Failed to update goal")


@router.delete("/goals/{goal_id}", response_model=SuccessResponse)
def delete_goal(goal_id: str, payload: DeleteGoalRequest, db: Session = Depends(get_db)):
    try:
        RemoteStoreService(db).delete_goal(goal_id, payload.userId)
        return SuccessResponse()
    except Exception:
        logger.exception(f"Error deleting goal {goal_id}")
        raise HTTPException(status_code=500, detail="Failed to delete goal")


@router.get("/user-data/{user_id}", response_model=UserDataResponse)
def get_user_data(user_id: str, db: Session = Depends(get_db)):
    """Every stored day for the user, for hydrating a client"""
    try:
        return UserDataResponse(data=RemoteStoreService(db).user_data(user_id))
    except Exception:
        logger.exception(f"Error fetching user data for {user_id}")
        raise HTTPException(status_code=500, detail="Failed to fetch user data")


@router.post("/day-data", response_model=SuccessResponse)
def save_day_data(day_data: RemoteDayData, db: Session = Depends(get_db)):
    """Insert or replace a day aggregate, keyed by (date, userId)"""
    try:
        RemoteStoreService(db).upsert_day_data(day_data)
        return SuccessResponse()
    except Exception:
        logger.exception(f"Error saving day data for {day_data.date}")
        raise HTTPException(status_code=500, detail="Failed to save day data")
