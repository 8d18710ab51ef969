"""Request and response models for the HTTP API."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, model_validator

from ..models import PaginationParams


class MessageRequest(BaseModel):
    """Request model for sending a message."""

    content: str
    type: Literal["user", "raw"] = "user"


class OkResponse(BaseModel):
    ok: bool = True


class StatusResponse(BaseModel):
    """Response model for agent status."""

    agent_type: str
    status: Literal["stable", "running"]
    thread_id: str | None = None


class PaginationQuery(BaseModel):
    """Transcript query parameters; exactly one pagination mode may be used."""

    limit: int | None = Field(None, ge=1)
    direction: Literal["head", "tail"] | None = None
    around: int | None = Field(None, ge=0)
    context: int | None = Field(None, ge=0)
    after: int | None = Field(None, ge=0)
    before: int | None = Field(None, ge=0)

    @model_validator(mode="after")
    def check_combination(self) -> "PaginationQuery":
        cursor = self.after is not None or self.before is not None
        if self.context is not None and self.around is None:
            raise ValueError("context requires around")
        if self.around is not None and (
            self.limit is not None or self.direction is not None
        ):
            raise ValueError("around cannot be combined with limit or direction")
        if self.after is not None and self.before is not None:
            raise ValueError("after and before are mutually exclusive")
        if cursor and (
            self.around is not None
            or self.context is not None
            or self.direction is not None
        ):
            raise ValueError("after/before cannot be combined with around, context or direction")
        return self

    def to_params(self) -> PaginationParams:
        return PaginationParams(**self.model_dump())


class AnswerQuestionAction(BaseModel):
    type: Literal["answer_question"]
    answers: dict[str, str]


class ApprovePlanAction(BaseModel):
    type: Literal["approve_plan"]
    approved: bool


class StopAgentAction(BaseModel):
    type: Literal["stop_agent"]


Action = Annotated[
    Union[AnswerQuestionAction, ApprovePlanAction, StopAgentAction],
    Field(discriminator="type"),
]


class ResumeRequest(BaseModel):
    thread_id: str = Field(min_length=1)
