from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

FieldType = Literal[
    "short-text",
    "long-text",
    "email",
    "number",
    "phone",
    "url",
    "multiple-choice",
    "checkbox",
    "dropdown",
    "date",
    "time",
    "file",
    "rating",
]
OPTION_FIELD_TYPES = frozenset({"multiple-choice", "checkbox", "dropdown"})

DEFAULT_FORM_TITLE = "Untitled Form"
READ_ONLY_FIELD_KEYS = frozenset({"order"})


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def field_keys(model: type[BaseModel]) -> frozenset[str]:
    """Attribute names of ``model`` plus their camelCase aliases."""
    names = set(model.model_fields)
    return frozenset(names | {to_camel(name) for name in names})


class BagModel(CamelModel):
    """Known keys plus any extra keys, kept verbatim."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class FormSettings(BagModel):
    submit_button_text: str = "Submit"
    show_progress_bar: bool = False
    confirmation_message: str = "Thank you for your submission!"


class FieldProperties(BagModel):
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    rows: Optional[int] = None
    max_rating: Optional[int] = None
    allow_multiple: Optional[bool] = None
    accepted_file_types: Optional[List[str]] = None
    max_file_size_mb: Optional[float] = None


class FieldOptionIn(CamelModel):
    id: Optional[str] = None
    value: str
    description: Optional[str] = None


class FieldIn(CamelModel):
    """One field of a form payload.

    Top-level keys that are not field columns are type-specific properties
    (e.g. ``maxRating``) and are folded into ``properties``; keys given inside
    ``properties`` win on conflict. ``order`` is read-only and dropped.
    """

    id: Optional[str] = None
    type: FieldType
    label: str = ""
    required: bool = False
    description: Optional[str] = None
    placeholder: Optional[str] = None
    default_value: Any = None
    properties: FieldProperties = Field(default_factory=FieldProperties)
    # None leaves persisted options untouched on update.
    options: Optional[List[FieldOptionIn]] = None

    @model_validator(mode="before")
    @classmethod
    def _collect_properties(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        known = field_keys(cls)
        extras = {key: value for key, value in data.items() if key not in known and key not in READ_ONLY_FIELD_KEYS}
        nested = data.get("properties")
        if not extras or not isinstance(nested, (dict, type(None))):
            return data
        cleaned = {key: value for key, value in data.items() if key in known}
        cleaned["properties"] = {**extras, **{key: value for key, value in (nested or {}).items() if value is not None}}
        return cleaned


class FormCreate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    is_public: bool = False
    settings: Optional[FormSettings] = None
    fields: List[FieldIn] = Field(default_factory=list)


class FormUpdate(CamelModel):
    """Partial update: only keys present in the payload are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    is_public: Optional[bool] = None
    settings: Optional[FormSettings] = None
    fields: Optional[List[FieldIn]] = None


class FieldOptionRead(CamelModel):
    id: str
    value: str
    description: Optional[str] = None
    order: int


class FieldRead(CamelModel):
    # Properties are also spread at the top level of the field.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    type: str
    label: str
    required: bool
    description: Optional[str] = None
    placeholder: Optional[str] = None
    default_value: Any = None
    order: int
    properties: Dict[str, Any] = Field(default_factory=dict)
    options: Optional[List[FieldOptionRead]] = None


class FormRead(CamelModel):
    id: str
    title: str
    description: str = ""
    fields: List[FieldRead] = Field(default_factory=list)
    is_public: bool
    user_id: str
    settings: Dict[str, Any] = Field(default_factory=dict)
    response_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class FormEnvelope(BaseModel):
    success: bool = True
    data: FormRead


class FormListEnvelope(BaseModel):
    success: bool = True
    data: List[FormRead]
