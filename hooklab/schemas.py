from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictInt


class WebhookListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    method: str
    pathname: str
    created_at: datetime


class WebhookList(BaseModel):
    webhooks: list[WebhookListItem]
    next_cursor: int | None = None


class WebhookDetail(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    method: str
    pathname: str
    ip: str
    status_code: int
    content_type: str | None = None
    content_length: int | None = None
    query_params: dict[str, str] | None = None
    headers: dict[str, str]
    body: str | None = None
    created_at: datetime


class GenerateRequest(BaseModel):
    webhook_ids: list[StrictInt] = Field(..., min_length=1)


class GenerateResponse(BaseModel):
    code: str


class CaptureResponse(BaseModel):
    id: int
