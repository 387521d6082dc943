from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from formhub.schemas.forms import CamelModel


class FormResponseRead(CamelModel):
    id: str
    form_id: str
    user_id: Optional[str] = None
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    values: Dict[str, Any] = Field(default_factory=dict)


class ResponseSubmitted(CamelModel):
    response_id: str


class ResponseEnvelope(BaseModel):
    success: bool = True
    data: FormResponseRead


class ResponseListEnvelope(BaseModel):
    success: bool = True
    data: List[FormResponseRead]


class ResponseSubmittedEnvelope(BaseModel):
    success: bool = True
    data: ResponseSubmitted
