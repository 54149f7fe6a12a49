"""Typed request models for every command.

Wire params are camelCase (``affectedElementIds``); snake_case names are
accepted too. Validation happens once here, before any handler touches the
ledger or the document.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from waymark.config import LIMITS
from waymark.ledger import KIND_NAMES


class CommandParams(BaseModel):
    """Base for command params: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class EmptyParams(CommandParams):
    pass


class RecordOperationParams(CommandParams):
    operation_type: str
    affected_element_ids: list[int] = Field(default_factory=list)
    original_state: dict[str, Any] | None = None
    parameters: dict[str, Any] | None = None

    @field_validator("operation_type")
    @classmethod
    def _known_kind(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in KIND_NAMES:
            raise ValueError(f"must be one of: {', '.join(KIND_NAMES)}")
        return normalized


class HistoryParams(CommandParams):
    limit: int = Field(default=LIMITS.HISTORY_DEFAULT_LIMIT, ge=1)


class GetOperationParams(CommandParams):
    operation_id: str = Field(min_length=1)


class DetectAnomaliesParams(CommandParams):
    scope: int | None = Field(
        default=None,
        validation_alias=AliasChoices("scope", "viewId", "view_id"),
    )
    checks: list[str] | None = Field(
        default=None,
        validation_alias=AliasChoices("checks", "checkTypes", "check_types"),
    )


class RecoveryContext(CommandParams):
    """Strategy inputs; extra keys are kept for diagnostics."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    element_id: int | None = None
    family_name: str | None = None


class AttemptRecoveryParams(CommandParams):
    error_type: str
    context: RecoveryContext = Field(default_factory=RecoveryContext)


class UndoParams(CommandParams):
    operation_id: str | None = None


class SafeDeleteParams(CommandParams):
    element_id: int
    force: bool = False


class SafeModifyParams(CommandParams):
    element_id: int
    modifications: dict[str, Any] = Field(
        min_length=1,
        validation_alias=AliasChoices("fields", "modifications"),
    )
    verify: bool = True
    max_retries: int = Field(default=1, ge=0)
