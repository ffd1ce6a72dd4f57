from .token_utils import generate_access_token, is_expired
from .validation_patterns import ValidationPatternService, VALIDATION_PATTERNS
from .field_types import FIELD_TYPES, get_type_spec, default_properties
from .field_validator import FieldValidator
from .field_dependency import (
    CalculationEngine,
    VisibilityEngine,
    DependencyValidator,
    DependencyGraph,
    FieldDependencyService,
)
from .signer_sequencer import SignerSequencer
from .reminder_policy import ReminderPolicy, ReminderDecision, ScheduledReminder
from .document_state import DocumentStateMachine
from .geometry import PdfGeometry, StaticGeometry

# repository and signing_process import the ORM models, which import this
# package; load them directly from their modules.

__all__ = [
    'generate_access_token',
    'is_expired',
    'ValidationPatternService',
    'VALIDATION_PATTERNS',
    'FIELD_TYPES',
    'get_type_spec',
    'default_properties',
    'FieldValidator',
    'CalculationEngine',
    'VisibilityEngine',
    'DependencyValidator',
    'DependencyGraph',
    'FieldDependencyService',
    'SignerSequencer',
    'ReminderPolicy',
    'ReminderDecision',
    'ScheduledReminder',
    'DocumentStateMachine',
    'PdfGeometry',
    'StaticGeometry',
]
