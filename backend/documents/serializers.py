import uuid

from rest_framework import serializers

from .choices import (
    Comparison,
    DateFormat,
    FieldType,
    Formula,
    OPERAND_FORMULAS,
    VALUE_COMPARISONS,
    VisibilityOperator,
)
from .domain import Calculation, Field, Signer, VisibilityCondition, VisibilityRules
from .services.field_types import default_properties
from .services.field_validator import FieldValidator
from .services.field_dependency import MAX_PRECISION
from .services.signer_sequencer import SignerSequencer
from .services.token_utils import generate_access_token


class VisibilityConditionSerializer(serializers.Serializer):
    """One condition of a visibility rule (JSON keys as sent by the editor)."""
    fieldId = serializers.CharField()
    comparison = serializers.ChoiceField(choices=Comparison.choices)
    value = serializers.JSONField(required=False, allow_null=True)

    def validate(self, data):
        if data['comparison'] in VALUE_COMPARISONS:
            value = data.get('value')
            if value is None or value == '':
                raise serializers.ValidationError(
                    {'value': f"Comparison '{data['comparison']}' requires a value"}
                )
        return data

    def create(self, validated_data):
        return VisibilityCondition(
            field_id=validated_data['fieldId'],
            comparison=validated_data['comparison'],
            value=validated_data.get('value'),
        )


class VisibilityRulesSerializer(serializers.Serializer):
    operator = serializers.ChoiceField(choices=VisibilityOperator.choices)
    conditions = VisibilityConditionSerializer(many=True, allow_empty=False)

    def create(self, validated_data):
        condition_serializer = VisibilityConditionSerializer()
        return VisibilityRules(
            operator=validated_data['operator'],
            conditions=tuple(
                condition_serializer.create(c) for c in validated_data['conditions']
            ),
        )


class CalculationSerializer(serializers.Serializer):
    formula = serializers.ChoiceField(choices=Formula.choices)
    separator = serializers.CharField(
        required=False, allow_null=True, allow_blank=True, trim_whitespace=False
    )
    format = serializers.ChoiceField(choices=DateFormat.choices, required=False, allow_null=True)
    precision = serializers.IntegerField(
        min_value=0, max_value=MAX_PRECISION, required=False, allow_null=True
    )

    def get_fields(self):
        # `fields` would shadow Serializer.fields as a declared attribute
        declared = super().get_fields()
        declared['fields'] = serializers.ListField(
            child=serializers.CharField(), required=False, default=list
        )
        return declared

    def validate(self, data):
        if data['formula'] in OPERAND_FORMULAS and not data.get('fields'):
            raise serializers.ValidationError(
                {'fields': f"Formula '{data['formula']}' requires at least one field"}
            )
        return data

    def create(self, validated_data):
        return Calculation(
            formula=validated_data['formula'],
            fields=tuple(validated_data.get('fields') or ()),
            separator=validated_data.get('separator'),
            format=validated_data.get('format'),
            precision=validated_data.get('precision'),
        )


class FieldPayloadSerializer(serializers.Serializer):
    """
    Incoming field definition.

    Missing properties are filled from the type's defaults before the
    type-specific property checks run. `save()` returns a domain Field;
    pass `document_id` in the serializer context.
    """
    id = serializers.CharField(required=False)
    type = serializers.ChoiceField(choices=FieldType.choices)
    page = serializers.IntegerField(min_value=0)
    x = serializers.FloatField(min_value=0)
    y = serializers.FloatField(min_value=0)
    width = serializers.FloatField()
    height = serializers.FloatField()
    required = serializers.BooleanField(default=True)
    signer_email = serializers.EmailField(required=False, allow_null=True, allow_blank=True)
    properties = serializers.DictField(required=False, default=dict)
    visibility_rules = VisibilityRulesSerializer(required=False, allow_null=True)
    calculation = CalculationSerializer(required=False, allow_null=True)

    def validate_width(self, value):
        if value <= 0:
            raise serializers.ValidationError('Width must be greater than 0')
        return value

    def validate_height(self, value):
        if value <= 0:
            raise serializers.ValidationError('Height must be greater than 0')
        return value

    def validate(self, data):
        data['properties'] = {**default_properties(data['type']), **data.get('properties', {})}
        field = self.build_field(data)
        errors = {}
        properties = FieldValidator.validate_properties(field)
        if not properties.valid:
            errors['properties'] = list(properties.errors)
        size = FieldValidator.validate_minimum_size(field)
        if not size.valid:
            errors['non_field_errors'] = list(size.errors)
        if errors:
            raise serializers.ValidationError(errors)
        return data

    def build_field(self, data):
        rules = data.get('visibility_rules')
        calculation = data.get('calculation')
        return Field(
            id=data.get('id') or str(uuid.uuid4()),
            document_id=str(self.context.get('document_id', '')),
            type=data['type'],
            page=data['page'],
            x=data['x'],
            y=data['y'],
            width=data['width'],
            height=data['height'],
            required=data.get('required', True),
            signer_email=data.get('signer_email') or None,
            properties=data.get('properties', {}),
            visibility_rules=VisibilityRulesSerializer().create(rules) if rules else None,
            calculation=CalculationSerializer().create(calculation) if calculation else None,
        )

    def create(self, validated_data):
        if not validated_data.get('id'):
            validated_data['id'] = str(uuid.uuid4())
        return self.build_field(validated_data)


class SignerListSerializer(serializers.ListSerializer):
    """Checks the signer list as a whole against the document's workflow type."""

    def validate(self, attrs):
        workflow_type = self.context.get('workflow_type')
        if workflow_type:
            signers = [self.child.build_signer(data) for data in attrs]
            result = SignerSequencer.validate_signing_orders(workflow_type, signers)
            if not result.valid:
                raise serializers.ValidationError(list(result.errors))
        return attrs


class SignerPayloadSerializer(serializers.Serializer):
    """
    Incoming signer. `save()` returns a domain Signer with a fresh access token.

    Context: `document_id`, and `workflow_type` to check a list of signers
    together (many=True).
    """
    id = serializers.CharField(required=False)
    email = serializers.EmailField()
    name = serializers.CharField(max_length=255)
    signing_order = serializers.IntegerField(min_value=0, required=False, allow_null=True)

    class Meta:
        list_serializer_class = SignerListSerializer

    def build_signer(self, data):
        return Signer(
            id=data.get('id') or str(uuid.uuid4()),
            document_id=str(self.context.get('document_id', '')),
            email=data['email'].strip().lower(),
            name=data['name'],
            access_token=generate_access_token(),
            signing_order=data.get('signing_order'),
        )

    def create(self, validated_data):
        return self.build_signer(validated_data)


class DocumentStateSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    title = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    workflow_type = serializers.CharField(read_only=True)
    expires_at = serializers.DateTimeField(read_only=True)
    scheduled_send_at = serializers.DateTimeField(read_only=True)
    completed_at = serializers.DateTimeField(read_only=True)
    sent_at = serializers.DateTimeField(read_only=True)


class SignerStateSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)
    name = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    signing_order = serializers.IntegerField(read_only=True)
    signed_at = serializers.DateTimeField(read_only=True)
    reminder_count = serializers.IntegerField(read_only=True)


class TransitionSerializer(serializers.Serializer):
    """Outcome of a workflow operation, for the caller deciding on emails/webhooks."""
    event = serializers.CharField(read_only=True)
    previous_status = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    status_changed = serializers.BooleanField(read_only=True)
    document = DocumentStateSerializer(source='aggregate.document', read_only=True)
    signer = SignerStateSerializer(read_only=True, allow_null=True)
    next_signers = serializers.SerializerMethodField()

    def get_next_signers(self, obj):
        """Signers who may act now; they are the ones to notify after a signature."""
        if obj.aggregate.document.is_terminal:
            return []
        current = SignerSequencer.current_signers(obj.aggregate.signers)
        return SignerStateSerializer(current, many=True).data
