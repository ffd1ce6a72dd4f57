"""
Per-type field behavior table.

Each FieldType maps to a FieldTypeSpec holding its minimum size, default
properties and the property checks that apply to it. Validation dispatches
through FIELD_TYPES rather than branching on the type, so every type's rules
can be read in one place.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Tuple

from ..choices import FieldType, PatternPreset
from .validation_patterns import VALIDATION_PATTERNS, ValidationPatternService

HEX_COLOR = re.compile(r'^#[0-9A-Fa-f]{6}$')

COLOR_PROPERTIES = ('textColor', 'signatureColor', 'backgroundColor', 'borderColor')

DATE_FORMATS = ('MM/DD/YYYY', 'DD/MM/YYYY', 'YYYY-MM-DD', 'MM-DD-YYYY', 'DD-MM-YYYY')

PropertyCheck = Callable[[Mapping[str, Any]], List[str]]


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _range_check(name, low, high, label=None) -> PropertyCheck:
    """Build a check that `name`, when present, is a number within [low, high]."""
    label = label or name

    def check(props):
        if name not in props or props[name] is None:
            return []
        value = props[name]
        if not _is_number(value):
            return [f'{label} must be a number']
        if low is not None and high is not None and not low <= value <= high:
            return [f'{label} must be between {low} and {high}']
        if low is not None and value < low:
            return [f'{label} must be {low} or greater']
        if high is not None and value > high:
            return [f'{label} must be {high} or less']
        return []

    return check


def _positive_check(name, high=None, label=None) -> PropertyCheck:
    """Build a check that `name`, when present, is a number > 0 and, with `high`, <= high."""
    label = label or name

    def check(props):
        value = props.get(name)
        if value is None:
            return []
        if high is not None and (not _is_number(value) or not 0 < value <= high):
            return [f'{label} must be greater than 0 and at most {high}']
        if not _is_number(value) or value <= 0:
            return [f'{label} must be greater than 0']
        return []

    return check


def check_colors(props) -> List[str]:
    errors = []
    for name in COLOR_PROPERTIES:
        color = props.get(name)
        if color and (not isinstance(color, str) or not HEX_COLOR.match(color)):
            errors.append(f'{name} must be a valid hex color (e.g., #000000)')
    return errors


def check_date_format(props) -> List[str]:
    date_format = props.get('dateFormat')
    if date_format and date_format not in DATE_FORMATS:
        return [f"dateFormat must be one of: {', '.join(DATE_FORMATS)}"]
    return []


def _options_check(label, min_options, max_options) -> PropertyCheck:
    """Option list rules shared by radio groups and dropdowns."""

    def check(props):
        errors = []
        options = props.get('options') or []
        if len(options) < min_options:
            plural = 'option' if min_options == 1 else 'options'
            errors.append(f'{label} field must have at least {min_options} {plural}')
        if len(options) > max_options:
            errors.append(f'{label} field cannot have more than {max_options} options')

        values = [
            str(o['value']) if isinstance(o, Mapping) and o.get('value') is not None else None
            for o in options
        ]
        if len(set(values)) != len(values):
            errors.append(f'{label} options must have unique values')

        for option in options:
            if not isinstance(option, Mapping):
                errors.append(f'{label} options must have a label and a value')
                break
            if not str(option.get('label') or '').strip():
                errors.append(f'{label} option labels cannot be empty')
                break
            if not str(option.get('value') or '').strip():
                errors.append(f'{label} option values cannot be empty')
                break

        selected = props.get('selectedValue')
        if selected and str(selected) not in values:
            errors.append(f'Selected value must match one of the {label.lower()} options')
        return errors

    return check


def check_validation_config(props) -> List[str]:
    """The `validation` entry of text/textarea fields selects a pattern preset."""
    config = props.get('validation')
    if not config:
        return []
    if not isinstance(config, Mapping):
        return ['validation must be an object with a pattern']
    preset = config.get('pattern')
    if not isinstance(preset, str) or preset not in VALIDATION_PATTERNS:
        return [f"validation pattern '{preset}' is not a known preset"]
    if preset == PatternPreset.CUSTOM:
        custom_regex = config.get('customRegex')
        if not custom_regex:
            return ['Custom validation requires a regular expression']
        if not ValidationPatternService.is_valid_regex(custom_regex):
            return ['Custom validation pattern is not a valid regular expression']
    return []


check_font_size = _positive_check('fontSize', 72)
check_border_width = _range_check('borderWidth', 0, 10)


_COMMON_BOX = {
    'backgroundColor': '#FFFFFF',
    'borderColor': '#000000',
    'borderWidth': 1,
}

_COMMON_TEXT = {
    'fontSize': 12,
    'fontFamily': 'Helvetica',
    'textColor': '#000000',
    'textAlign': 'left',
}


@dataclass(frozen=True)
class FieldTypeSpec:
    type: str
    description: str
    min_width: float
    min_height: float
    default_properties: Mapping[str, Any] = field(default_factory=dict)
    checks: Tuple[PropertyCheck, ...] = ()


FIELD_TYPES: Dict[str, FieldTypeSpec] = {
    FieldType.SIGNATURE: FieldTypeSpec(
        type=FieldType.SIGNATURE,
        description='Signature',
        min_width=150,
        min_height=50,
        default_properties={'signatureColor': '#000000', **_COMMON_BOX},
        checks=(check_colors, check_border_width),
    ),
    FieldType.INITIALS: FieldTypeSpec(
        type=FieldType.INITIALS,
        description='Initials',
        min_width=50,
        min_height=50,
        default_properties={'signatureColor': '#000000', **_COMMON_BOX},
        checks=(check_colors, check_border_width),
    ),
    FieldType.DATE: FieldTypeSpec(
        type=FieldType.DATE,
        description='Date',
        min_width=100,
        min_height=25,
        default_properties={'dateFormat': 'MM/DD/YYYY', **_COMMON_TEXT, **_COMMON_BOX},
        checks=(check_date_format, check_font_size, check_colors, check_border_width),
    ),
    FieldType.TEXT: FieldTypeSpec(
        type=FieldType.TEXT,
        description='Text Input',
        min_width=100,
        min_height=25,
        default_properties={'placeholder': '', 'maxLength': 255, **_COMMON_TEXT, **_COMMON_BOX},
        checks=(
            _positive_check('maxLength'),
            check_font_size,
            check_colors,
            check_border_width,
            check_validation_config,
        ),
    ),
    FieldType.CHECKBOX: FieldTypeSpec(
        type=FieldType.CHECKBOX,
        description='Checkbox',
        min_width=15,
        min_height=15,
        default_properties={'checked': False, **_COMMON_BOX},
        checks=(check_colors, check_border_width),
    ),
    FieldType.RADIO: FieldTypeSpec(
        type=FieldType.RADIO,
        description='Radio Button Group',
        min_width=100,
        min_height=50,
        default_properties={
            'options': [
                {'label': 'Option 1', 'value': 'option1'},
                {'label': 'Option 2', 'value': 'option2'},
            ],
            'orientation': 'vertical',
            'fontSize': 12,
            'textColor': '#000000',
            'optionSpacing': 20,
        },
        checks=(
            _options_check('Radio', 2, 10),
            _range_check('optionSpacing', 10, 50, label='Option spacing'),
            check_font_size,
            check_colors,
            check_border_width,
        ),
    ),
    FieldType.DROPDOWN: FieldTypeSpec(
        type=FieldType.DROPDOWN,
        description='Dropdown Select',
        min_width=120,
        min_height=25,
        default_properties={
            'options': [
                {'label': 'Option 1', 'value': 'option1'},
                {'label': 'Option 2', 'value': 'option2'},
                {'label': 'Option 3', 'value': 'option3'},
            ],
            'placeholder': 'Select an option',
            'fontSize': 12,
            'textColor': '#000000',
            **_COMMON_BOX,
        },
        checks=(
            _options_check('Dropdown', 1, 20),
            check_font_size,
            check_colors,
            check_border_width,
        ),
    ),
    FieldType.TEXTAREA: FieldTypeSpec(
        type=FieldType.TEXTAREA,
        description='Multi-line Text',
        min_width=150,
        min_height=60,
        default_properties={
            'placeholder': '',
            'rows': 3,
            'maxLength': 1000,
            **_COMMON_TEXT,
            **_COMMON_BOX,
        },
        checks=(
            _range_check('rows', 1, 20, label='Textarea rows'),
            _range_check('maxLength', 1, 10000, label='Textarea maxLength'),
            check_font_size,
            check_colors,
            check_border_width,
            check_validation_config,
        ),
    ),
}


def get_type_spec(field_type) -> FieldTypeSpec:
    """Look up a field type, raising KeyError for types outside the enumeration."""
    return FIELD_TYPES[field_type]


def is_valid_field_type(field_type) -> bool:
    return field_type in FIELD_TYPES


def default_properties(field_type) -> Dict[str, Any]:
    """Fresh copy of the default properties for a type (options lists copied too)."""
    spec = get_type_spec(field_type)
    props = {}
    for key, value in spec.default_properties.items():
        if isinstance(value, list):
            value = [dict(item) for item in value]
        props[key] = value
    return props
