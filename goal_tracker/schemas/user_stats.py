from pydantic import BaseModel, Field
from typing import List, Optional
import datetime as dt
from enum import Enum


class AchievementType(str, Enum):
    STREAK = "streak"
    GOALS = "goals"
    TIME = "time"
    SPECIAL = "special"


class Achievement(BaseModel):
    id: str
    title: str
    description: str
    icon: str
    type: AchievementType
    requirement: int
    unlockedAt: Optional[dt.datetime] = None
    isUnlocked: bool = False


class UserStats(BaseModel):
    currentStreak: int = 0
    longestStreak: int = 0
    totalCheckIns: int = 0
    totalGoalsCompleted: int = 0
    totalTimeLogged: int = 0  # in minutes
    achievements: List[Achievement] = Field(default_factory=list)
    lastCheckIn: Optional[dt.datetime] = None


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TodoItem(BaseModel):
    id: str
    text: str = Field(..., min_length=1)
    completed: bool = False
    createdAt: dt.datetime
    priority: Priority = Priority.MEDIUM
