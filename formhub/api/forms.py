from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from formhub.core.deps import get_current_caller, get_optional_caller
from formhub.core.errors import Unauthorized
from formhub.db.session import get_db
from formhub.schemas.auth import CallerIdentity
from formhub.schemas.forms import FormCreate, FormEnvelope, FormListEnvelope, FormUpdate
from formhub.services import form_repository
from formhub.services.access_policy import can_view_form

router = APIRouter()


@router.get("", response_model=FormListEnvelope)
def list_forms(
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return {"success": True, "data": form_repository.list_forms(db, caller.id)}


@router.post("", response_model=FormEnvelope, status_code=201)
def create_form(
    payload: FormCreate,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return {"success": True, "data": form_repository.create_form(db, caller.id, payload)}


@router.get("/{form_id}", response_model=FormEnvelope)
def get_form(
    form_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity | None = Depends(get_optional_caller),
):
    form = form_repository.get_form(db, form_id)
    if not can_view_form(form, caller.id if caller else None):
        raise Unauthorized("Unauthorized: This form is private")
    return {"success": True, "data": form}


@router.put("/{form_id}", response_model=FormEnvelope)
def update_form(
    form_id: str,
    payload: FormUpdate,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    return {"success": True, "data": form_repository.update_form(db, form_id, caller.id, payload)}


@router.delete("/{form_id}")
def delete_form(
    form_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(get_current_caller),
):
    form_repository.delete_form(db, form_id, caller.id)
    return {"success": True, "message": "Form deleted successfully"}
