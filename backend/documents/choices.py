"""
Enumerations shared by the domain values and the ORM columns.
"""

from django.db import models


class DocumentStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    SCHEDULED = 'scheduled', 'Scheduled'
    PENDING = 'pending', 'Pending signatures'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


class WorkflowType(models.TextChoices):
    SINGLE = 'single', 'Single signer'
    SEQUENTIAL = 'sequential', 'Sequential signing (signers in order)'
    PARALLEL = 'parallel', 'Parallel signing (any order)'


class SignerStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    SIGNED = 'signed', 'Signed'
    DECLINED = 'declined', 'Declined'


class FieldType(models.TextChoices):
    SIGNATURE = 'signature', 'Signature'
    INITIALS = 'initials', 'Initials'
    DATE = 'date', 'Date'
    TEXT = 'text', 'Text Input'
    CHECKBOX = 'checkbox', 'Checkbox'
    RADIO = 'radio', 'Radio Button Group'
    DROPDOWN = 'dropdown', 'Dropdown Select'
    TEXTAREA = 'textarea', 'Multi-line Text'


class Formula(models.TextChoices):
    SUM = 'sum', 'Sum of selected fields'
    AVERAGE = 'average', 'Average of selected fields'
    MIN = 'min', 'Minimum of selected fields'
    MAX = 'max', 'Maximum of selected fields'
    COUNT = 'count', 'Count of non-empty fields'
    CONCAT = 'concat', 'Concatenation of selected fields'
    TODAY = 'today', "Today's date"


class DateFormat(models.TextChoices):
    ISO = 'iso', 'ISO (YYYY-MM-DD)'
    LOCALE = 'locale', 'Locale'
    SHORT = 'short', 'Short (M/D/YYYY)'


class VisibilityOperator(models.TextChoices):
    AND = 'and', 'All conditions'
    OR = 'or', 'Any condition'


class Comparison(models.TextChoices):
    EQUALS = 'equals', 'Equals'
    NOT_EQUALS = 'not_equals', 'Does not equal'
    CONTAINS = 'contains', 'Contains'
    NOT_EMPTY = 'not_empty', 'Is not empty'
    IS_EMPTY = 'is_empty', 'Is empty'
    IS_CHECKED = 'is_checked', 'Is checked'
    IS_NOT_CHECKED = 'is_not_checked', 'Is not checked'


class PatternPreset(models.TextChoices):
    EMAIL = 'email', 'Email Address'
    PHONE_US = 'phone_us', 'US Phone Number'
    PHONE_INTL = 'phone_intl', 'International Phone'
    SA_ID = 'sa_id', 'South African ID'
    SSN = 'ssn', 'US Social Security Number'
    ZIP_US = 'zip_us', 'US ZIP Code'
    POSTAL_CA = 'postal_ca', 'Canadian Postal Code'
    POSTAL_UK = 'postal_uk', 'UK Postal Code'
    NUMBER = 'number', 'Number'
    ALPHA = 'alpha', 'Letters Only'
    ALPHANUMERIC = 'alphanumeric', 'Alphanumeric'
    URL = 'url', 'URL'
    DATE_ISO = 'date_iso', 'Date (ISO)'
    CURRENCY = 'currency', 'Currency'
    CUSTOM = 'custom', 'Custom Pattern'


# Comparisons that need an explicit value to compare against
VALUE_COMPARISONS = (Comparison.EQUALS, Comparison.NOT_EQUALS, Comparison.CONTAINS)

# Formulas that aggregate over referenced fields
OPERAND_FORMULAS = (
    Formula.SUM,
    Formula.CONCAT,
    Formula.COUNT,
    Formula.AVERAGE,
    Formula.MIN,
    Formula.MAX,
)
