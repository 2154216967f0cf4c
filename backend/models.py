import re
from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

Priority = Literal["low", "medium", "high"]
Status = Literal["pending", "in-progress", "done"]

class Task(BaseModel):
    id: str
    user_id: str
    title: str
    priority: Priority = "medium"
    status: Status = "pending"
    created_at: str  # ISO format datetime string

class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    priority: Priority = "medium"
    status: Status = "pending"

class TaskUpdate(BaseModel):
    # Title is fixed once the task exists
    priority: Optional[Priority] = None
    status: Optional[Status] = None

class Subtask(BaseModel):
    id: str
    task_id: str
    user_id: str  # Copied from the parent task
    title: str
    status: Status = "pending"
    created_at: str

class SubtaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    status: Status = "pending"

class SubtaskUpdate(BaseModel):
    status: Status

class Credentials(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v

class SessionInfo(BaseModel):
    token: str
    user_id: str
    email: str

class AcceptSuggestionRequest(BaseModel):
    suggestion: str = Field(..., min_length=1)
    candidates: list[str] = []
