from __future__ import annotations

from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .diagnostics import ConfigError, Diagnostic

RecordT = TypeVar("RecordT", bound="Record")


class Record(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    name: str

    @classmethod
    def from_mapping(cls: Type[RecordT], data: Mapping[str, Any], location: str = "") -> RecordT:
        """Build a record, reporting pydantic failures as ConfigError."""
        if not isinstance(data, Mapping):
            raise ConfigError(
                Diagnostic(
                    code="E-CONFIG-INVALID",
                    message=f"{cls.__name__} entry must be a mapping, got {type(data).__name__}",
                    location=location or None,
                )
            )
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            raise ConfigError(_diagnostic_from(exc, cls.__name__, location)) from exc


class Platform(Record):
    backend_plugin: Optional[str] = None
    backend_hint_box: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("backend_hint_box", "vagrant_box")
    )
    backend_hint_box_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("backend_hint_box_url", "vagrant_box_url")
    )
    base_run_list: Tuple[str, ...] = ()


class Suite(Record):
    run_list: Tuple[str, ...]
    # Free-form node attributes handed to the configuration run. Read-only at
    # the top level; nested values are stored as loaded.
    json_params: Mapping[str, Any] = Field(
        default_factory=lambda: MappingProxyType({}),
        validation_alias=AliasChoices("json_params", "json"),
    )

    @field_validator("json_params")
    @classmethod
    def freeze_params(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))


def build_records(
    cls: Type[RecordT], entries: Optional[List[Mapping[str, Any]]], section: str
) -> Tuple[RecordT, ...]:
    return tuple(
        cls.from_mapping(entry, f"{section}/{idx}") for idx, entry in enumerate(entries or [])
    )


def _diagnostic_from(exc: ValidationError, kind: str, location: str) -> Diagnostic:
    first = exc.errors()[0]
    field_path = "/".join(str(part) for part in first.get("loc", ()))
    where = "/".join(part for part in (location, field_path) if part)
    if first.get("type") == "missing":
        return Diagnostic(
            code="E-CONFIG-REQUIRED",
            message=f"{kind} is missing required field '{field_path}'",
            location=where or None,
            data={"field": field_path},
        )
    return Diagnostic(
        code="E-CONFIG-INVALID",
        message=f"{kind} field '{field_path}': {first.get('msg')}",
        location=where or None,
        data={"field": field_path},
    )
