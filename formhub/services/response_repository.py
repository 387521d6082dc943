from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from formhub.core.errors import NotFound, Unauthenticated, Unauthorized, ValidationFailure
from formhub.models.common import utcnow
from formhub.models.form import Form
from formhub.models.form_field import FormField
from formhub.models.form_response import FormResponse
from formhub.models.response_value import ResponseValue
from formhub.schemas.responses import FormResponseRead
from formhub.services.access_policy import (
    can_delete_response,
    can_mutate_response,
    can_submit_response,
    can_view_response,
)
from formhub.services.form_repository import form_row_or_404
from formhub.services.persistence import parse_uuid, store_errors
from formhub.services.value_codec import decode_value, encode_value

logger = logging.getLogger(__name__)


def _is_missing_answer(value: Any) -> bool:
    # False and 0 are answers; only absent, null and empty text are not.
    if value is None:
        return True
    return isinstance(value, str) and value == ""


def _answer_key(raw: Any) -> str:
    return str(raw or "").strip().lower()


def _response_or_404(db: Session, response_id: Any) -> FormResponse:
    uid = parse_uuid(response_id)
    row = db.get(FormResponse, uid) if uid is not None else None
    if row is None:
        raise NotFound("Response not found")
    return row


def _form_owner_or_404(db: Session, form_id: uuid.UUID) -> str:
    owner_id = db.query(Form.user_id).filter(Form.id == form_id).scalar()
    if owner_id is None:
        raise NotFound("Form not found")
    return owner_id


def _decoded_values(db: Session, response_id: uuid.UUID) -> dict[str, Any]:
    rows = (
        db.query(ResponseValue.field_id, ResponseValue.value)
        .filter(ResponseValue.response_id == response_id)
        .all()
    )
    return {str(field_id): decode_value(value) for field_id, value in rows}


def _serialize_response(row: FormResponse, values: dict[str, Any]) -> FormResponseRead:
    return FormResponseRead(
        id=str(row.id),
        form_id=str(row.form_id),
        user_id=row.user_id,
        submitted_at=row.submitted_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
        values=values,
    )


def _insert_values(db: Session, response_id: uuid.UUID, answers: Iterable[tuple[uuid.UUID, Any]]) -> None:
    db.add_all(
        [
            ResponseValue(response_id=response_id, field_id=field_id, value=encode_value(value))
            for field_id, value in answers
        ]
    )
    db.flush()


def _validated_answers(fields: list, answers: dict[str, Any]) -> list[tuple[uuid.UUID, Any]]:
    known = {_answer_key(field_id): field_id for field_id, _required in fields}
    normalized: dict[str, Any] = {}
    for raw_key, value in answers.items():
        key = _answer_key(raw_key)
        if key not in known:
            raise ValidationFailure(f"Unknown field: {raw_key}")
        normalized[key] = value

    for field_id, required in fields:
        if required and _is_missing_answer(normalized.get(_answer_key(field_id))):
            raise ValidationFailure(f"Missing required field: {field_id}")

    return [(known[key], value) for key, value in normalized.items() if not _is_missing_answer(value)]


def submit_response(
    db: Session,
    form_id: Any,
    answers: dict[str, Any],
    caller_id: str | None = None,
) -> dict[str, str]:
    """Validate ``answers`` against the form and store them in one transaction.

    The response row and its value rows are flushed inside the same session
    transaction; any store failure rolls back both, so a response never exists
    without its answers.
    """
    with store_errors(db, "fetch form"):
        form = form_row_or_404(db, form_id)
        if not can_submit_response(form, caller_id):
            raise Unauthorized(
                "Unauthorized: This form is not public and you do not have permission to submit responses"
            )
        fields = (
            db.query(FormField.id, FormField.required)
            .filter(FormField.form_id == form.id)
            .order_by(FormField.sort_order.asc(), FormField.created_at.asc())
            .all()
        )
        resolved_form_id = form.id

    values = _validated_answers([(row.id, bool(row.required)) for row in fields], answers or {})

    response_id = uuid.uuid4()
    with store_errors(db, "create form response"):
        db.add(
            FormResponse(
                id=response_id,
                form_id=resolved_form_id,
                user_id=str(caller_id) if caller_id else None,
                submitted_at=utcnow(),
            )
        )
        db.flush()
        if values:
            _insert_values(db, response_id, values)
        db.commit()
    logger.info("Response submitted form_id=%s response_id=%s values=%s", resolved_form_id, response_id, len(values))
    return {"response_id": str(response_id)}


def get_response(db: Session, response_id: Any, caller_id: str | None = None) -> FormResponseRead:
    with store_errors(db, "fetch response"):
        row = _response_or_404(db, response_id)
        owner_id = _form_owner_or_404(db, row.form_id)
        if not caller_id:
            raise Unauthenticated("Unauthorized: Please sign in to view this response")
        if not can_view_response(row, owner_id, caller_id):
            raise Unauthorized("Unauthorized: You do not have permission to view this response")
        return _serialize_response(row, _decoded_values(db, row.id))


def list_responses(db: Session, form_id: Any, owner_id: str) -> list[FormResponseRead]:
    with store_errors(db, "fetch form responses"):
        form = form_row_or_404(db, form_id)
        if not can_mutate_response(form.user_id, owner_id):
            raise Unauthorized("Unauthorized: You do not have permission to view responses for this form")
        rows = (
            db.query(FormResponse)
            .filter(FormResponse.form_id == form.id)
            .order_by(FormResponse.submitted_at.desc(), FormResponse.created_at.desc())
            .all()
        )

        out: list[FormResponseRead] = []
        for row in rows:
            try:
                with db.begin_nested():
                    values = _decoded_values(db, row.id)
            except (SQLAlchemyError, TypeError, ValueError) as exc:
                logger.warning("Failed to load values for response %s: %s", row.id, exc)
                values = {}
            out.append(_serialize_response(row, values))
        return out


def delete_response(db: Session, response_id: Any, caller_id: str) -> None:
    with store_errors(db, "delete response"):
        row = _response_or_404(db, response_id)
        owner_id = _form_owner_or_404(db, row.form_id)
        if not can_delete_response(row, owner_id, caller_id):
            raise Unauthorized("Unauthorized: You do not have permission to delete this response")
        db.execute(delete(ResponseValue).where(ResponseValue.response_id == row.id))
        db.delete(row)
        db.commit()
    logger.info("Response deleted response_id=%s by=%s", response_id, caller_id)
