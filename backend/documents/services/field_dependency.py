"""
Field dependency engine.

Responsibilities:
- Evaluate calculated fields against a snapshot of field values
- Evaluate visibility rules against the same snapshot
- Validate calculation and visibility references when fields are built
- Build the explicit reference graph used to reject calculation cycles and
  to order calculated fields for evaluation

Nothing here reads storage or mutates its inputs. A snapshot is a mapping
of field id -> current value (str, number, bool or None).
"""

import math
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from django.utils import timezone

from ..choices import (
    OPERAND_FORMULAS,
    VALUE_COMPARISONS,
    Comparison,
    DateFormat,
    Formula,
    VisibilityOperator,
)
from ..domain import Calculation, Field, ValidationResult, VisibilityCondition, VisibilityRules
from ..exceptions import ValidationFailed

MAX_PRECISION = 10


def is_empty_value(value) -> bool:
    """None, missing and blank strings count as empty."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ''
    return False


def to_number(value) -> Optional[float]:
    """Numeric reading of a snapshot value, or None when it has none."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_text(value) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _normalize(number):
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _round(number, precision):
    if number is None:
        return None
    if precision is None:
        return _normalize(number)
    try:
        quantum = Decimal(1).scaleb(-int(precision))
        rounded = Decimal(repr(number)).quantize(quantum, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return _normalize(number)
    return _normalize(float(rounded))


class CalculationEngine:
    """Evaluates calculation formulas over a value snapshot."""

    @staticmethod
    def _numbers(field_ids: Iterable[str], snapshot: Mapping) -> List[float]:
        numbers = []
        for field_id in field_ids:
            number = to_number(snapshot.get(field_id))
            if number is not None:
                numbers.append(number)
        return numbers

    @staticmethod
    def format_today(today: date, fmt: Optional[str]) -> str:
        if fmt == DateFormat.LOCALE:
            return today.strftime('%x')
        if fmt == DateFormat.SHORT:
            return f'{today.month}/{today.day}/{today.year}'
        return today.isoformat()

    @staticmethod
    def evaluate(calculation: Calculation, snapshot: Mapping, today: Optional[date] = None):
        """
        Evaluate one calculation.

        Empty and non-numeric referenced values are ignored by the numeric
        formulas; empty values are skipped by `concat` and `count`.

        Args:
            calculation: Calculation value
            snapshot: mapping of field id -> current value
            today: date used by the `today` formula (defaults to the current UTC date)

        Returns:
            int, float, str or None: `sum`, `count` and `average` default to 0,
            `min`/`max` to None, `concat` to ''.
        """
        formula = calculation.formula
        refs = calculation.fields or ()
        precision = calculation.precision

        if formula == Formula.SUM:
            return _round(sum(CalculationEngine._numbers(refs, snapshot), 0.0), precision)

        if formula == Formula.AVERAGE:
            numbers = CalculationEngine._numbers(refs, snapshot)
            average = sum(numbers) / len(numbers) if numbers else 0.0
            return _round(average, precision)

        if formula == Formula.MIN:
            numbers = CalculationEngine._numbers(refs, snapshot)
            return _round(min(numbers), precision) if numbers else None

        if formula == Formula.MAX:
            numbers = CalculationEngine._numbers(refs, snapshot)
            return _round(max(numbers), precision) if numbers else None

        if formula == Formula.COUNT:
            return sum(
                1 for field_id in refs
                if snapshot.get(field_id) is not None and snapshot.get(field_id) != ''
            )

        if formula == Formula.CONCAT:
            separator = ' ' if calculation.separator is None else calculation.separator
            parts = [
                to_text(snapshot.get(field_id)) for field_id in refs
                if snapshot.get(field_id) is not None and snapshot.get(field_id) != ''
            ]
            return separator.join(parts)

        if formula == Formula.TODAY:
            today = today or timezone.now().date()
            return CalculationEngine.format_today(today, calculation.format)

        return None


def _strict_equals(left, right) -> bool:
    # bool is an int subclass; True must not equal 1
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if isinstance(left, str) != isinstance(right, str):
        return False
    return left == right


def _is_checked(value) -> bool:
    return value is True or value == 'true'


class VisibilityEngine:
    """Evaluates visibility rules over a value snapshot."""

    @staticmethod
    def evaluate_condition(
        condition: VisibilityCondition,
        snapshot: Mapping,
        fields_by_id: Mapping[str, Field],
    ) -> bool:
        referenced = fields_by_id.get(condition.field_id)
        if referenced is None:
            return False

        current = snapshot.get(condition.field_id)
        comparison = condition.comparison

        if comparison == Comparison.EQUALS:
            return _strict_equals(current, condition.value)
        if comparison == Comparison.NOT_EQUALS:
            return not _strict_equals(current, condition.value)
        if comparison == Comparison.CONTAINS:
            if isinstance(current, str) and isinstance(condition.value, str):
                return condition.value.lower() in current.lower()
            return False
        if comparison == Comparison.NOT_EMPTY:
            return not is_empty_value(current)
        if comparison == Comparison.IS_EMPTY:
            return is_empty_value(current)
        if comparison == Comparison.IS_CHECKED:
            return referenced.is_checkbox and _is_checked(current)
        if comparison == Comparison.IS_NOT_CHECKED:
            return referenced.is_checkbox and not _is_checked(current)
        return False

    @staticmethod
    def evaluate(
        rules: Optional[VisibilityRules],
        snapshot: Mapping,
        fields: Sequence[Field],
    ) -> bool:
        """True when the field governed by `rules` should be shown."""
        if rules is None or not rules.conditions:
            return True

        fields_by_id = {f.id: f for f in fields}
        results = (
            VisibilityEngine.evaluate_condition(c, snapshot, fields_by_id)
            for c in rules.conditions
        )
        if rules.operator == VisibilityOperator.OR:
            return any(results)
        return all(results)

    @staticmethod
    def is_required_and_visible(field: Field, snapshot: Mapping, fields: Sequence[Field]) -> bool:
        """A hidden field is never required."""
        if not field.required:
            return False
        return VisibilityEngine.evaluate(field.visibility_rules, snapshot, fields)

    @staticmethod
    def unfilled_required_fields(
        fields: Sequence[Field],
        snapshot: Mapping,
        signer_email: Optional[str] = None,
    ) -> List[Field]:
        """
        Required, visible fields without a value.

        Args:
            fields: all fields of the document
            snapshot: mapping of field id -> current value
            signer_email: when given, only fields assigned to this signer
        """
        email = signer_email.strip().lower() if signer_email else None
        unfilled = []
        for field in fields:
            if email is not None and (field.signer_email or '').strip().lower() != email:
                continue
            if not VisibilityEngine.is_required_and_visible(field, snapshot, fields):
                continue
            if is_empty_value(snapshot.get(field.id)):
                unfilled.append(field)
        return unfilled


class DependencyValidator:
    """Construction-time checks on calculation and visibility references."""

    @staticmethod
    def validate_calculation(field: Field, all_field_ids: Iterable[str]) -> ValidationResult:
        calculation = field.calculation
        if calculation is None:
            return ValidationResult(valid=True)

        errors = []
        known = set(all_field_ids)
        refs = list(calculation.fields or ())

        if calculation.formula not in Formula.values:
            errors.append(f"Unknown calculation formula '{calculation.formula}'")
        elif calculation.formula in OPERAND_FORMULAS and not refs:
            errors.append(
                f"Calculation formula '{calculation.formula}' requires at least one field"
            )

        if field.id in refs:
            errors.append('Calculation cannot reference itself')

        for ref in refs:
            if ref != field.id and ref not in known:
                errors.append(f"Calculation references unknown field '{ref}'")

        precision = calculation.precision
        if precision is not None:
            if isinstance(precision, bool) or not isinstance(precision, int):
                errors.append('Calculation precision must be a whole number')
            elif not 0 <= precision <= MAX_PRECISION:
                errors.append(f'Calculation precision must be between 0 and {MAX_PRECISION}')

        if (
            calculation.formula == Formula.TODAY
            and calculation.format is not None
            and calculation.format not in DateFormat.values
        ):
            errors.append(f"Date format must be one of: {', '.join(DateFormat.values)}")

        return ValidationResult.from_errors(errors)

    @staticmethod
    def validate_visibility_rules(field: Field, all_field_ids: Iterable[str]) -> ValidationResult:
        rules = field.visibility_rules
        if rules is None:
            return ValidationResult(valid=True)

        errors = []
        known = set(all_field_ids)

        if rules.operator not in VisibilityOperator.values:
            errors.append("Visibility operator must be 'and' or 'or'")
        if not rules.conditions:
            errors.append('Visibility rules must have at least one condition')

        for index, condition in enumerate(rules.conditions, start=1):
            if not condition.field_id:
                errors.append(f'Condition {index}: a field must be selected')
            elif condition.field_id == field.id:
                errors.append('Field cannot reference itself in visibility rules')
            elif condition.field_id not in known:
                errors.append(
                    f"Condition {index}: referenced field '{condition.field_id}' does not exist"
                )

            if condition.comparison not in Comparison.values:
                errors.append(f"Condition {index}: unknown comparison '{condition.comparison}'")
            elif condition.comparison in VALUE_COMPARISONS and condition.value in (None, ''):
                errors.append(
                    f"Condition {index}: comparison '{condition.comparison}' requires a value"
                )

        return ValidationResult.from_errors(errors)


class DependencyGraph:
    """
    Explicit reference graph between calculated fields.

    An edge A -> B means A's calculation reads B's value. Visibility rules
    read values, never visibility, so they do not add edges.
    """

    def __init__(self, edges: Mapping[str, Iterable[str]]):
        self.edges = {node: sorted(set(targets)) for node, targets in edges.items()}

    @classmethod
    def from_fields(cls, fields: Sequence[Field]) -> 'DependencyGraph':
        known = {f.id for f in fields}
        edges = {}
        for field in fields:
            edges.setdefault(field.id, [])
            if field.calculation is not None:
                edges[field.id].extend(r for r in field.calculation.fields if r in known)
        return cls(edges)

    def find_cycle(self) -> Optional[List[str]]:
        """
        First cycle found, as a closed path (e.g. ['a', 'b', 'a']), or None.

        Nodes are visited in sorted order so the same graph always reports
        the same cycle.
        """
        white, grey, black = 0, 1, 2
        color = {node: white for node in self.edges}
        stack: List[str] = []

        def visit(node):
            color[node] = grey
            stack.append(node)
            for target in self.edges.get(node, ()):
                state = color.get(target, white)
                if state == grey:
                    return stack[stack.index(target):] + [target]
                if state == white:
                    found = visit(target)
                    if found:
                        return found
            stack.pop()
            color[node] = black
            return None

        for node in sorted(self.edges):
            if color[node] == white:
                found = visit(node)
                if found:
                    return found
        return None

    def evaluation_order(self) -> List[str]:
        """
        Field ids ordered so every field comes after the fields it reads.

        Raises:
            ValidationFailed: if the graph contains a calculation cycle
        """
        cycle = self.find_cycle()
        if cycle:
            raise ValidationFailed([f"Calculation cycle detected: {' -> '.join(cycle)}"])

        order: List[str] = []
        done = set()

        def visit(node):
            if node in done:
                return
            done.add(node)
            for target in self.edges.get(node, ()):
                visit(target)
            order.append(node)

        for node in sorted(self.edges):
            visit(node)
        return order


class FieldDependencyService:
    """Entry points combining the evaluators above over a whole document."""

    @staticmethod
    def validate_references(fields: Sequence[Field]) -> ValidationResult:
        """All calculation/visibility reference errors plus any calculation cycle."""
        all_ids = [f.id for f in fields]
        errors = []
        for field in fields:
            errors.extend(DependencyValidator.validate_calculation(field, all_ids).errors)
            errors.extend(DependencyValidator.validate_visibility_rules(field, all_ids).errors)
        cycle = DependencyGraph.from_fields(fields).find_cycle()
        if cycle:
            errors.append(f"Calculation cycle detected: {' -> '.join(cycle)}")
        return ValidationResult.from_errors(errors)

    @staticmethod
    def resolve_snapshot(
        fields: Sequence[Field],
        values: Mapping,
        today: Optional[date] = None,
    ) -> Dict[str, object]:
        """
        Copy of `values` with every calculated field evaluated.

        Calculated fields are evaluated in dependency order, so a calculation
        reading another calculated field sees its resolved value.
        """
        snapshot = dict(values)
        by_id = {f.id: f for f in fields}
        for field_id in DependencyGraph.from_fields(fields).evaluation_order():
            field = by_id[field_id]
            if field.calculation is not None:
                snapshot[field_id] = CalculationEngine.evaluate(field.calculation, snapshot, today)
        return snapshot
