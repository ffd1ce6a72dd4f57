"""
Domain values for the signing workflow.

Dataclasses representing one document aggregate (document, signers, fields
and the current field values). They are frozen: every workflow operation
returns new values built with `dataclasses.replace` instead of mutating
the ones it was given.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .choices import (
    DocumentStatus,
    FieldType,
    SignerStatus,
    WorkflowType,
)

FieldValue = Union[str, int, float, bool, None]


@dataclass(frozen=True)
class ValidationResult:
    """Aggregated outcome of a validation pass. Never short-circuited."""
    valid: bool
    errors: Tuple[str, ...] = ()

    @classmethod
    def from_errors(cls, errors) -> 'ValidationResult':
        errors = tuple(errors)
        return cls(valid=not errors, errors=errors)

    def merge(self, *others: 'ValidationResult') -> 'ValidationResult':
        errors = list(self.errors)
        for other in others:
            errors.extend(other.errors)
        return ValidationResult.from_errors(errors)


@dataclass(frozen=True)
class ReminderSettings:
    """Per-document reminder configuration (days before expiry)."""
    enabled: bool = True
    intervals: Tuple[int, ...] = (1, 3, 7)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'ReminderSettings':
        if not data:
            return cls()
        return cls(
            enabled=bool(data.get('enabled', True)),
            intervals=tuple(int(d) for d in data.get('intervals', (1, 3, 7))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'enabled': self.enabled, 'intervals': list(self.intervals)}


@dataclass(frozen=True)
class Document:
    id: str
    owner_id: Optional[str] = None
    title: str = ''
    status: str = DocumentStatus.DRAFT
    workflow_type: str = WorkflowType.SINGLE
    page_count: int = 1
    expires_at: Optional[datetime] = None
    scheduled_send_at: Optional[datetime] = None
    reminder_settings: ReminderSettings = field(default_factory=ReminderSettings)
    completed_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (DocumentStatus.COMPLETED, DocumentStatus.CANCELLED)


@dataclass(frozen=True)
class SigningOrigin:
    """Where a signature came from, recorded on the signer."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class Signer:
    id: str
    document_id: str
    email: str
    name: str
    access_token: str
    signing_order: Optional[int] = None
    status: str = SignerStatus.PENDING
    signed_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    reminder_count: int = 0
    last_reminder_sent_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == SignerStatus.PENDING

    @property
    def has_signed(self) -> bool:
        return self.status == SignerStatus.SIGNED

    @property
    def has_declined(self) -> bool:
        return self.status == SignerStatus.DECLINED


@dataclass(frozen=True)
class FieldOption:
    label: str
    value: str


@dataclass(frozen=True)
class VisibilityCondition:
    field_id: str
    comparison: str
    value: FieldValue = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'VisibilityCondition':
        return cls(
            field_id=data.get('fieldId'),
            comparison=data.get('comparison'),
            value=data.get('value'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {'fieldId': self.field_id, 'comparison': self.comparison}
        if self.value is not None:
            data['value'] = self.value
        return data


@dataclass(frozen=True)
class VisibilityRules:
    """Boolean expression over other fields' values: `and` = all, `or` = any."""
    operator: str
    conditions: Tuple[VisibilityCondition, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional['VisibilityRules']:
        if data is None:
            return None
        return cls(
            operator=data.get('operator', 'and'),
            conditions=tuple(
                VisibilityCondition.from_dict(c) for c in data.get('conditions', [])
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'operator': self.operator,
            'conditions': [c.to_dict() for c in self.conditions],
        }


@dataclass(frozen=True)
class Calculation:
    """A formula deriving one field's value from other fields' values."""
    formula: str
    fields: Tuple[str, ...] = ()
    separator: Optional[str] = None
    format: Optional[str] = None
    precision: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> Optional['Calculation']:
        if data is None:
            return None
        return cls(
            formula=data.get('formula'),
            fields=tuple(data.get('fields') or ()),
            separator=data.get('separator'),
            format=data.get('format'),
            precision=data.get('precision'),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {'formula': self.formula, 'fields': list(self.fields)}
        if self.separator is not None:
            data['separator'] = self.separator
        if self.format is not None:
            data['format'] = self.format
        if self.precision is not None:
            data['precision'] = self.precision
        return data


@dataclass(frozen=True)
class Field:
    id: str
    document_id: str
    type: str
    page: int
    x: float
    y: float
    width: float
    height: float
    required: bool = True
    signer_email: Optional[str] = None
    properties: Mapping[str, Any] = field(default_factory=dict)
    visibility_rules: Optional[VisibilityRules] = None
    calculation: Optional[Calculation] = None

    @property
    def is_checkbox(self) -> bool:
        return self.type == FieldType.CHECKBOX

    @property
    def is_calculated(self) -> bool:
        return self.calculation is not None

    @property
    def has_assigned_signer(self) -> bool:
        return bool(self.signer_email and self.signer_email.strip())

    @property
    def options(self) -> List[FieldOption]:
        return [
            FieldOption(label=o.get('label', ''), value=o.get('value', ''))
            for o in (self.properties.get('options') or [])
        ]


@dataclass(frozen=True)
class Aggregate:
    """One document with its signers, fields and current field values."""
    document: Document
    signers: Tuple[Signer, ...] = ()
    fields: Tuple[Field, ...] = ()
    values: Mapping[str, FieldValue] = field(default_factory=dict)
    version: int = 0

    def get_signer(self, signer_id: str) -> Optional[Signer]:
        return next((s for s in self.signers if s.id == signer_id), None)

    def fields_for_signer(self, email: str) -> List[Field]:
        email = (email or '').strip().lower()
        return [
            f for f in self.fields
            if f.signer_email and f.signer_email.strip().lower() == email
        ]

    def with_signer(self, signer: Signer) -> 'Aggregate':
        """Return a copy with `signer` replacing the signer of the same id."""
        return replace(
            self,
            signers=tuple(signer if s.id == signer.id else s for s in self.signers),
        )


@dataclass(frozen=True)
class Transition:
    """
    Outcome of one workflow operation.

    Carries the old and new document status plus the affected signer so the
    caller can decide which emails or webhooks to fire.
    """
    aggregate: Aggregate
    event: str
    previous_status: str
    status: str
    signer: Optional[Signer] = None

    @property
    def status_changed(self) -> bool:
        return self.previous_status != self.status
