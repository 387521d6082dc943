from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from formhub.core.deps import get_current_caller, get_optional_caller
from formhub.db.session import get_db
from formhub.schemas.auth import CallerIdentity
from formhub.schemas.responses import ResponseEnvelope, ResponseListEnvelope, ResponseSubmittedEnvelope
from formhub.services import response_repository

router = APIRouter()


@router.post("/forms/{form_id}/responses", response_model=ResponseSubmittedEnvelope, status_code=201)
def submit_response(
    form_id: str,
    answers: Optional[Dict[str, Any]] = Body(default=None),
    db: Session = Depends(get_db),
    caller: CallerIdentity | None = Depends(get_optional_caller),
):
    result = response_repository.submit_response(db, form_id, answers or {}, caller.id if caller else None)
    return {"success": True, "data": result}


@router.get("/forms/{form_id}/responses", response_model=ResponseListEnvelope)
def list_responses(
    form_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return {"success": True, "data": response_repository.list_responses(db, form_id, caller.id)}


@router.get("/responses/{response_id}", response_model=ResponseEnvelope)
def get_response(
    response_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity | None = Depends(get_optional_caller),
):
    row = response_repository.get_response(db, response_id, caller.id if caller else None)
    return {"success": True, "data": row}


@router.delete("/responses/{response_id}")
def delete_response(
    response_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    response_repository.delete_response(db, response_id, caller.id)
    return {"success": True, "message": "Response deleted successfully"}
