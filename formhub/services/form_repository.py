from __future__ import annotations

import logging
import uuid
from typing import Any, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from formhub.core.errors import NotFound, Unauthorized
from formhub.models.common import utcnow
from formhub.models.field_option import FieldOption
from formhub.models.form import Form
from formhub.models.form_field import FormField
from formhub.models.form_response import FormResponse
from formhub.models.response_value import ResponseValue
from formhub.schemas.forms import (
    DEFAULT_FORM_TITLE,
    OPTION_FIELD_TYPES,
    FieldIn,
    FieldOptionIn,
    FieldOptionRead,
    FieldRead,
    FormCreate,
    FormRead,
    FormSettings,
    FormUpdate,
    field_keys,
)
from formhub.services.access_policy import can_mutate_form
from formhub.services.persistence import parse_uuid, store_errors
from formhub.services.reconciliation import plan_reconciliation
from formhub.services.value_codec import decode_value, encode_value

logger = logging.getLogger(__name__)


def _normalize_title(raw: str | None) -> str:
    return str(raw or "").strip() or DEFAULT_FORM_TITLE


def _settings_payload(value: FormSettings | None) -> dict[str, Any]:
    return (value or FormSettings()).model_dump(by_alias=True)


def _settings_for_read(stored: dict | None) -> dict[str, Any]:
    return FormSettings.model_validate(stored or {}).model_dump(by_alias=True)


def form_row_or_404(db: Session, form_id: Any) -> Form:
    uid = parse_uuid(form_id)
    row = db.get(Form, uid) if uid is not None else None
    if row is None:
        raise NotFound("Form not found")
    return row


def _count_responses(db: Session, form_id: uuid.UUID) -> int:
    return db.query(func.count(FormResponse.id)).filter(FormResponse.form_id == form_id).scalar()


def _response_count(db: Session, form_id: uuid.UUID) -> int:
    # Savepoint keeps the outer transaction usable if the count fails.
    try:
        with db.begin_nested():
            count = _count_responses(db, form_id)
    except SQLAlchemyError as exc:
        logger.warning("Failed to count responses for form %s: %s", form_id, exc)
        return 0
    return int(count or 0)


def _serialize_option(row: FieldOption) -> FieldOptionRead:
    return FieldOptionRead(
        id=str(row.id),
        value=row.value,
        description=row.description or None,
        order=int(row.sort_order or 0),
    )


def _serialize_field(row: FormField, options: list[FieldOption]) -> FieldRead:
    has_options = row.type in OPTION_FIELD_TYPES
    properties = dict(row.properties or {})
    known = field_keys(FieldRead)
    return FieldRead(
        id=str(row.id),
        type=row.type,
        label=row.label,
        required=bool(row.required),
        description=row.description or None,
        placeholder=row.placeholder or None,
        default_value=decode_value(row.default_value),
        order=int(row.sort_order or 0),
        properties=properties,
        options=[_serialize_option(item) for item in options] if has_options else None,
        **{key: value for key, value in properties.items() if key not in known},
    )


def _hydrate(db: Session, form: Form) -> FormRead:
    fields = (
        db.query(FormField)
        .filter(FormField.form_id == form.id)
        .order_by(FormField.sort_order.asc(), FormField.created_at.asc())
        .all()
    )
    option_field_ids = [row.id for row in fields if row.type in OPTION_FIELD_TYPES]
    options_by_field: dict[uuid.UUID, list[FieldOption]] = {}
    if option_field_ids:
        option_rows = (
            db.query(FieldOption)
            .filter(FieldOption.field_id.in_(option_field_ids))
            .order_by(FieldOption.sort_order.asc(), FieldOption.created_at.asc())
            .all()
        )
        for item in option_rows:
            options_by_field.setdefault(item.field_id, []).append(item)

    return FormRead(
        id=str(form.id),
        title=form.title,
        description=form.description or "",
        fields=[_serialize_field(row, options_by_field.get(row.id, [])) for row in fields],
        is_public=bool(form.is_public),
        user_id=form.user_id,
        settings=_settings_for_read(form.settings),
        response_count=_response_count(db, form.id),
        created_at=form.created_at,
        updated_at=form.updated_at,
    )


def _field_columns(item: FieldIn, position: int) -> dict[str, Any]:
    return {
        "type": item.type,
        "label": item.label,
        "required": bool(item.required),
        "description": item.description or None,
        "placeholder": item.placeholder or None,
        "default_value": encode_value(item.default_value) if item.default_value not in (None, "") else None,
        "sort_order": position,
        "properties": item.properties.model_dump(by_alias=True, exclude_none=True),
    }


def _insert_options(db: Session, field_id: uuid.UUID, options: Sequence[FieldOptionIn]) -> None:
    for position, option in enumerate(options):
        db.add(
            FieldOption(
                field_id=field_id,
                value=option.value,
                description=option.description or None,
                sort_order=position,
            )
        )


def _insert_field(db: Session, form_id: uuid.UUID, item: FieldIn, position: int) -> FormField:
    row = FormField(id=uuid.uuid4(), form_id=form_id, **_field_columns(item, position))
    db.add(row)
    db.flush()
    if item.type in OPTION_FIELD_TYPES and item.options:
        _insert_options(db, row.id, item.options)
    return row


def _delete_options(db: Session, field_ids: list[uuid.UUID]) -> None:
    if field_ids:
        db.execute(delete(FieldOption).where(FieldOption.field_id.in_(field_ids)))


def _delete_fields(db: Session, field_ids: list[uuid.UUID]) -> None:
    if not field_ids:
        return
    _delete_options(db, field_ids)
    db.execute(delete(FormField).where(FormField.id.in_(field_ids)))


def _reconcile_options(db: Session, field_id: uuid.UUID, options: Sequence[FieldOptionIn]) -> None:
    existing = db.query(FieldOption).filter(FieldOption.field_id == field_id).all()
    plan = plan_reconciliation(existing, options)
    if plan.to_delete:
        db.execute(delete(FieldOption).where(FieldOption.id.in_([row.id for row in plan.to_delete])))
    now = utcnow()
    for row, option, position in plan.to_update:
        row.value = option.value
        row.description = option.description or None
        row.sort_order = position
        row.updated_at = now
    for option, position in plan.to_create:
        db.add(
            FieldOption(
                field_id=field_id,
                value=option.value,
                description=option.description or None,
                sort_order=position,
            )
        )


def _reconcile_fields(db: Session, form_id: uuid.UUID, items: Sequence[FieldIn]) -> None:
    existing = db.query(FormField).filter(FormField.form_id == form_id).all()
    plan = plan_reconciliation(existing, items)
    _delete_fields(db, [row.id for row in plan.to_delete])

    now = utcnow()
    for row, item, position in plan.to_update:
        for key, value in _field_columns(item, position).items():
            setattr(row, key, value)
        row.updated_at = now
        if item.type not in OPTION_FIELD_TYPES:
            _delete_options(db, [row.id])
        elif item.options is not None:
            _reconcile_options(db, row.id, item.options)

    for item, position in plan.to_create:
        _insert_field(db, form_id, item, position)

    logger.debug(
        "Reconciled fields form_id=%s deleted=%s updated=%s created=%s",
        form_id,
        len(plan.to_delete),
        len(plan.to_update),
        len(plan.to_create),
    )


def list_forms(db: Session, owner_id: str) -> list[FormRead]:
    with store_errors(db, "fetch forms"):
        rows = (
            db.query(Form)
            .filter(Form.user_id == str(owner_id))
            .order_by(Form.updated_at.desc(), Form.created_at.desc())
            .all()
        )
        return [_hydrate(db, row) for row in rows]


def get_form(db: Session, form_id: Any) -> FormRead:
    with store_errors(db, "fetch form"):
        return _hydrate(db, form_row_or_404(db, form_id))


def create_form(db: Session, owner_id: str, draft: FormCreate) -> FormRead:
    form_id = uuid.uuid4()
    with store_errors(db, "create form"):
        db.add(
            Form(
                id=form_id,
                title=_normalize_title(draft.title),
                description=draft.description or "",
                is_public=bool(draft.is_public),
                user_id=str(owner_id),
                settings=_settings_payload(draft.settings),
            )
        )
        db.flush()
        for position, item in enumerate(draft.fields):
            _insert_field(db, form_id, item, position)
        db.commit()
    logger.info("Form created form_id=%s owner=%s fields=%s", form_id, owner_id, len(draft.fields))
    return get_form(db, form_id)


def update_form(db: Session, form_id: Any, owner_id: str, patch: FormUpdate) -> FormRead:
    with store_errors(db, "update form"):
        form = form_row_or_404(db, form_id)
        if not can_mutate_form(form, owner_id):
            raise Unauthorized("Unauthorized: You do not have permission to update this form")

        provided = patch.model_fields_set
        if "title" in provided:
            form.title = _normalize_title(patch.title)
        if "description" in provided:
            form.description = patch.description or ""
        if "is_public" in provided and patch.is_public is not None:
            form.is_public = bool(patch.is_public)
        if "settings" in provided:
            form.settings = _settings_payload(patch.settings)
        form.updated_at = utcnow()

        if patch.fields is not None:
            _reconcile_fields(db, form.id, patch.fields)
        resolved_id = form.id
        db.commit()
    return get_form(db, resolved_id)


def delete_form(db: Session, form_id: Any, owner_id: str) -> None:
    with store_errors(db, "delete form"):
        form = form_row_or_404(db, form_id)
        if not can_mutate_form(form, owner_id):
            raise Unauthorized("Unauthorized: You do not have permission to delete this form")

        response_ids = select(FormResponse.id).where(FormResponse.form_id == form.id)
        field_ids = select(FormField.id).where(FormField.form_id == form.id)
        db.execute(delete(ResponseValue).where(ResponseValue.response_id.in_(response_ids)))
        db.execute(delete(FormResponse).where(FormResponse.form_id == form.id))
        db.execute(delete(FieldOption).where(FieldOption.field_id.in_(field_ids)))
        db.execute(delete(FormField).where(FormField.form_id == form.id))
        db.delete(form)
        db.commit()
    logger.info("Form deleted form_id=%s owner=%s", form_id, owner_id)
