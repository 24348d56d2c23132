from pydantic import BaseModel, Field, model_validator
from typing import Dict, List, Optional
import datetime as dt
from enum import Enum


class Category(str, Enum):
    WORK = "work"
    PERSONAL = "personal"
    HEALTH = "health"
    LEARNING = "learning"
    OTHER = "other"


class TimeEntry(BaseModel):
    id: str
    date: dt.date  # the day this session counts toward
    startTime: dt.datetime
    endTime: Optional[dt.datetime] = None
    duration: int  # in minutes, fixed when the session ends
    note: Optional[str] = None


class Goal(BaseModel):
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: Category = Category.OTHER
    targetHours: float = Field(..., gt=0)  # per covered day
    loggedHours: float = Field(0, ge=0)
    completed: bool = False
    startDate: dt.date
    endDate: dt.date
    isMultiDay: bool = False
    timeEntries: List[TimeEntry] = Field(default_factory=list)
    createdAt: dt.datetime

    @model_validator(mode="after")
    def check_range(self):
        if self.endDate < self.startDate:
            raise ValueError("endDate must not be before startDate")
        return self

    def covers(self, day: dt.date) -> bool:
        return self.startDate <= day <= self.endDate


class GoalCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: Category = Category.OTHER
    targetHours: float = Field(..., gt=0)
    startDate: dt.date
    endDate: dt.date
    isMultiDay: bool = False

    @model_validator(mode="after")
    def check_range(self):
        if self.endDate < self.startDate:
            raise ValueError("endDate must not be before startDate")
        return self


class DayData(BaseModel):
    date: dt.date
    goals: List[Goal] = Field(default_factory=list)
    totalLoggedHours: float = 0
    completedGoals: int = 0
    checkedIn: Optional[bool] = None


# Wire shapes exchanged with the remote store

class RemoteGoal(Goal):
    userId: str = Field(..., min_length=1)
    date: Optional[dt.date] = None  # day the client issued the write


class RemoteDayData(DayData):
    userId: str = Field(..., min_length=1)


class DeleteGoalRequest(BaseModel):
    userId: str = Field(..., min_length=1)


class SuccessResponse(BaseModel):
    success: bool = True


class GoalsListResponse(BaseModel):
    goals: List[Goal]


class UserDataResponse(BaseModel):
    data: Dict[str, DayData]


class HealthResponse(BaseModel):
    status: str
    message: str
    mongodb: str  # field name kept for existing clients
    database: str
    timestamp: dt.datetime
