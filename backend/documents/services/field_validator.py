"""
Field structural validation.

Responsibilities:
- Check field geometry against the page it sits on
- Check minimum size per field type
- Check type-specific properties through the FIELD_TYPES table
- Check values supplied by signers against the field's configuration

Every check collects all violations; callers get one complete list.
"""

from typing import List, Optional

from django.core.exceptions import ValidationError
from django.core.validators import validate_email

from ..choices import FieldType
from ..domain import Aggregate, Field, ValidationResult
from .field_dependency import FieldDependencyService, is_empty_value
from .field_types import FIELD_TYPES, get_type_spec, is_valid_field_type
from .validation_patterns import ValidationPatternService


def _fmt(number) -> str:
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return str(number)


class FieldValidator:
    """Service for field structural and value validation."""

    @staticmethod
    def validate_bounds(
        field: Field,
        page_width: float,
        page_height: float,
        page_count: Optional[int] = None,
    ) -> ValidationResult:
        """
        Validate field position and dimensions.

        Args:
            field: Field value
            page_width: width of the field's page, in points
            page_height: height of the field's page, in points
            page_count: number of pages in the document, when known

        Returns:
            ValidationResult with every bounds violation
        """
        errors = []

        if field.page < 0:
            errors.append('Page number must be 0 or greater')
        elif page_count is not None and field.page >= page_count:
            errors.append(
                f'Invalid page number: {field.page}. '
                f'Document has {page_count} pages (0-indexed)'
            )

        if field.x < 0:
            errors.append('X coordinate must be 0 or greater')
        if field.y < 0:
            errors.append('Y coordinate must be 0 or greater')

        if field.width <= 0:
            errors.append('Width must be greater than 0')
        if field.height <= 0:
            errors.append('Height must be greater than 0')

        if field.x + field.width > page_width:
            errors.append(
                f'Field extends beyond page width '
                f'({_fmt(field.x + field.width)} > {_fmt(page_width)})'
            )
        if field.y + field.height > page_height:
            errors.append(
                f'Field extends beyond page height '
                f'({_fmt(field.y + field.height)} > {_fmt(page_height)})'
            )

        return ValidationResult.from_errors(errors)

    @staticmethod
    def meets_minimum_size(field: Field) -> bool:
        spec = get_type_spec(field.type)
        return field.width >= spec.min_width and field.height >= spec.min_height

    @staticmethod
    def validate_minimum_size(field: Field) -> ValidationResult:
        if not is_valid_field_type(field.type):
            return ValidationResult(valid=True)
        if FieldValidator.meets_minimum_size(field):
            return ValidationResult(valid=True)
        spec = get_type_spec(field.type)
        return ValidationResult.from_errors([
            f'Field does not meet minimum size requirements for {field.type}: '
            f'{_fmt(spec.min_width)}x{_fmt(spec.min_height)} points'
        ])

    @staticmethod
    def validate_properties(field: Field) -> ValidationResult:
        """Run every property check registered for the field's type."""
        if not is_valid_field_type(field.type):
            return ValidationResult.from_errors([f"Invalid field type: {field.type}"])
        props = field.properties or {}
        errors = []
        for check in FIELD_TYPES[field.type].checks:
            errors.extend(check(props))
        return ValidationResult.from_errors(errors)

    @staticmethod
    def validate_assignment(field: Field) -> ValidationResult:
        if not field.signer_email:
            return ValidationResult(valid=True)
        try:
            validate_email(field.signer_email.strip())
        except ValidationError:
            return ValidationResult.from_errors(
                [f"Invalid signer email format: {field.signer_email}"]
            )
        return ValidationResult(valid=True)

    @staticmethod
    def validate(
        field: Field,
        page_width: float,
        page_height: float,
        page_count: Optional[int] = None,
    ) -> ValidationResult:
        """Bounds, minimum size, properties and assignment checks combined."""
        return FieldValidator.validate_bounds(field, page_width, page_height, page_count).merge(
            FieldValidator.validate_minimum_size(field),
            FieldValidator.validate_properties(field),
            FieldValidator.validate_assignment(field),
        )

    @staticmethod
    def validate_document(aggregate: Aggregate, geometry) -> ValidationResult:
        """
        Validate every field of a document plus the references between them.

        Args:
            aggregate: Aggregate value
            geometry: object with `page_dimensions(page_index) -> (width, height)`

        Returns:
            ValidationResult; errors of individual fields are prefixed with the field id
        """
        page_count = aggregate.document.page_count
        errors: List[str] = []
        for field in aggregate.fields:
            on_document = field.page >= 0 and (page_count is None or field.page < page_count)
            if on_document:
                width, height = geometry.page_dimensions(field.page)
            else:
                # Off-document page: measure against the first page so the
                # remaining checks still run.
                width, height = geometry.page_dimensions(0)
            result = FieldValidator.validate(field, width, height, page_count)
            errors.extend(f'Field {field.id}: {error}' for error in result.errors)
        errors.extend(FieldDependencyService.validate_references(aggregate.fields).errors)
        return ValidationResult.from_errors(errors)

    @staticmethod
    def validate_value(field: Field, value) -> ValidationResult:
        """
        Validate a value supplied by a signer for `field`.

        Empty values pass here; required fields are checked against
        visibility separately.
        """
        if is_empty_value(value):
            return ValidationResult(valid=True)

        props = field.properties or {}
        errors = []

        if field.type in (FieldType.TEXT, FieldType.TEXTAREA):
            if not isinstance(value, str):
                errors.append('Value must be text')
            else:
                max_length = props.get('maxLength')
                if isinstance(max_length, int) and len(value) > max_length:
                    errors.append(f'Value must be at most {max_length} characters')
                config = props.get('validation') or {}
                if config.get('pattern'):
                    check = ValidationPatternService.validate_value(
                        value,
                        config['pattern'],
                        custom_regex=config.get('customRegex'),
                        message=config.get('message'),
                    )
                    if not check.valid:
                        errors.append(check.message)

        elif field.type in (FieldType.RADIO, FieldType.DROPDOWN):
            allowed = [o.value for o in field.options]
            if str(value) not in allowed:
                errors.append(f"'{value}' is not one of the available options")

        elif field.type == FieldType.CHECKBOX:
            if value not in (True, False, 'true', 'false'):
                errors.append('Checkbox value must be true or false')

        return ValidationResult.from_errors(errors)
