"""Action log and follow-up schemas."""
from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from core.clock import as_utc
from schemas.base import ApiModel, RequestModel
from schemas.session import Session

FOLLOW_UP_QUESTION = "What have you done?"


class ActionType(str, Enum):
    CHEAT = "cheat"
    HARM = "harm"


class ActionConsequences(ApiModel):
    message: Optional[str] = None
    additional_lockdown: Optional[int] = None


class Action(ApiModel):
    id: str
    type: ActionType
    server_time: datetime
    consequences: Optional[ActionConsequences] = None
    lockdown_started: bool = False

    @classmethod
    def from_doc(cls, doc: dict) -> "Action":
        consequences = doc.get("consequences")
        return cls(
            id=doc["id"],
            type=doc["type"],
            server_time=as_utc(doc["server_time"]),
            consequences=ActionConsequences(**consequences) if consequences else None,
            lockdown_started=doc.get("lockdown_started", False),
        )


class ActionResponse(ApiModel):
    action: Action
    session: Session


class PendingFollowUpQuestion(ApiModel):
    id: str  # id of the harm action being reflected on
    text: str


class PendingFollowUpResponse(ApiModel):
    has_pending: bool
    question: Optional[PendingFollowUpQuestion] = None
    last_lockdown_timestamp: Optional[datetime] = None
    cycles_missed: Optional[int] = None


class FollowUpRequest(RequestModel):
    answer: str = Field(min_length=1, max_length=5000)
    harm_ids: List[UUID] = Field(default_factory=list)


class FollowUp(ApiModel):
    id: str
    question: str
    answer: str
    created_at: datetime

    @classmethod
    def from_doc(cls, doc: dict) -> "FollowUp":
        return cls(
            id=doc["id"],
            question=doc["question"],
            answer=doc["answer"],
            created_at=as_utc(doc["created_at"]),
        )


class FollowUpResponse(ApiModel):
    follow_up: FollowUp
