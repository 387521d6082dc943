"""Authorization predicates for forms and responses.

Pure functions over already-loaded rows; callers pass ``None`` for an
anonymous caller. Ids are compared as trimmed strings.
"""

from __future__ import annotations

from typing import Any


def _norm(value: Any) -> str:
    return str(value or "").strip()


def _is_caller(caller_id: Any, user_id: Any) -> bool:
    caller = _norm(caller_id)
    return bool(caller) and caller == _norm(user_id)


def can_view_form(form: Any, caller_id: Any) -> bool:
    return bool(form.is_public) or _is_caller(caller_id, form.user_id)


def can_mutate_form(form: Any, caller_id: Any) -> bool:
    return _is_caller(caller_id, form.user_id)


def can_submit_response(form: Any, caller_id: Any) -> bool:
    # Private forms only accept submissions from their owner.
    return bool(form.is_public) or _is_caller(caller_id, form.user_id)


def can_view_response(response: Any, form_owner_id: Any, caller_id: Any) -> bool:
    return _is_caller(caller_id, form_owner_id) or _is_caller(caller_id, response.user_id)


def can_mutate_response(form_owner_id: Any, caller_id: Any) -> bool:
    return _is_caller(caller_id, form_owner_id)


def can_delete_response(response: Any, form_owner_id: Any, caller_id: Any) -> bool:
    return can_mutate_response(form_owner_id, caller_id) or _is_caller(caller_id, response.user_id)
