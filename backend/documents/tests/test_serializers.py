from documents.choices import DocumentStatus, FieldType, WorkflowType
from documents.domain import Calculation, Field, Signer, Transition, VisibilityRules
from documents.serializers import (
    CalculationSerializer,
    FieldPayloadSerializer,
    SignerPayloadSerializer,
    TransitionSerializer,
    VisibilityRulesSerializer,
)

from .factories import make_aggregate, make_document, make_signer


def field_payload(**overrides):
    data = {
        'type': 'text',
        'page': 0,
        'x': 10,
        'y': 20,
        'width': 150,
        'height': 30,
        'signer_email': 'alice@example.com',
    }
    data.update(overrides)
    return data


class TestFieldPayloadSerializer:

    def test_builds_field_with_default_properties(self):
        serializer = FieldPayloadSerializer(
            data=field_payload(properties={'fontSize': 14}),
            context={'document_id': 'doc-1'},
        )
        assert serializer.is_valid(), serializer.errors

        field = serializer.save()

        assert isinstance(field, Field)
        assert field.document_id == 'doc-1'
        assert field.type == FieldType.TEXT
        assert field.properties['fontSize'] == 14
        assert field.properties['maxLength'] == 255
        assert field.id

    def test_nested_rules_and_calculation(self):
        serializer = FieldPayloadSerializer(data=field_payload(
            visibility_rules={'operator': 'or', 'conditions': [{'fieldId': 'f1', 'comparison': 'is_checked'}]},
            calculation={'formula': 'sum', 'fields': ['f1', 'f2'], 'precision': 2},
        ))
        assert serializer.is_valid(), serializer.errors

        field = serializer.save()

        assert field.visibility_rules.operator == 'or'
        assert field.visibility_rules.conditions[0].field_id == 'f1'
        assert field.calculation == Calculation('sum', ('f1', 'f2'), precision=2)

    def test_rejects_bad_geometry_and_type(self):
        serializer = FieldPayloadSerializer(data=field_payload(type='stamp', page=-1, width=0))
        assert not serializer.is_valid()
        assert set(serializer.errors) == {'type', 'page', 'width'}

    def test_rejects_invalid_properties(self):
        serializer = FieldPayloadSerializer(data=field_payload(properties={'fontSize': 99}))
        assert not serializer.is_valid()
        assert serializer.errors['properties'] == ['fontSize must be greater than 0 and at most 72']

    def test_rejects_undersized_field(self):
        serializer = FieldPayloadSerializer(data=field_payload(type='signature', width=50, height=20))
        assert not serializer.is_valid()
        assert 'non_field_errors' in serializer.errors


class TestVisibilityAndCalculationSerializers:

    def test_value_required_for_equals(self):
        serializer = VisibilityRulesSerializer(data={
            'operator': 'and',
            'conditions': [{'fieldId': 'f1', 'comparison': 'equals'}],
        })
        assert not serializer.is_valid()

    def test_rules_need_conditions(self):
        serializer = VisibilityRulesSerializer(data={'operator': 'and', 'conditions': []})
        assert not serializer.is_valid()

    def test_rules_build_domain_value(self):
        serializer = VisibilityRulesSerializer(data={
            'operator': 'and',
            'conditions': [{'fieldId': 'f1', 'comparison': 'equals', 'value': 'yes'}],
        })
        assert serializer.is_valid(), serializer.errors
        rules = serializer.save()
        assert isinstance(rules, VisibilityRules)
        assert rules.conditions[0].value == 'yes'

    def test_operand_formula_requires_fields(self):
        serializer = CalculationSerializer(data={'formula': 'concat'})
        assert not serializer.is_valid()
        assert 'fields' in serializer.errors

    def test_precision_range(self):
        serializer = CalculationSerializer(data={'formula': 'sum', 'fields': ['a'], 'precision': 11})
        assert not serializer.is_valid()

    def test_today_without_fields(self):
        serializer = CalculationSerializer(data={'formula': 'today', 'format': 'short'})
        assert serializer.is_valid(), serializer.errors
        assert serializer.save() == Calculation('today', (), format='short')


class TestSignerPayloadSerializer:

    def test_builds_signer(self):
        serializer = SignerPayloadSerializer(
            data={'email': 'Alice@Example.com', 'name': 'Alice'},
            context={'document_id': 'doc-1'},
        )
        assert serializer.is_valid(), serializer.errors

        signer = serializer.save()

        assert isinstance(signer, Signer)
        assert signer.email == 'alice@example.com'
        assert len(signer.access_token) == 64

    def test_list_checked_against_workflow(self):
        serializer = SignerPayloadSerializer(
            data=[
                {'email': 'a@example.com', 'name': 'A', 'signing_order': 0},
                {'email': 'b@example.com', 'name': 'B', 'signing_order': 0},
            ],
            many=True,
            context={'workflow_type': WorkflowType.SEQUENTIAL},
        )
        assert not serializer.is_valid()
        assert serializer.errors['non_field_errors'] == ['Signing order 0 is used by more than one signer']

    def test_valid_list_saves_every_signer(self):
        serializer = SignerPayloadSerializer(
            data=[
                {'email': 'a@example.com', 'name': 'A', 'signing_order': 0},
                {'email': 'b@example.com', 'name': 'B', 'signing_order': 1},
            ],
            many=True,
            context={'workflow_type': WorkflowType.SEQUENTIAL, 'document_id': 'doc-1'},
        )
        assert serializer.is_valid(), serializer.errors
        signers = serializer.save()
        assert [s.signing_order for s in signers] == [0, 1]


class TestTransitionSerializer:

    def test_represents_transition(self):
        signer = make_signer()
        aggregate = make_aggregate(make_document(status=DocumentStatus.PENDING), signers=[signer])
        transition = Transition(
            aggregate=aggregate,
            event='document.sent',
            previous_status=DocumentStatus.DRAFT,
            status=DocumentStatus.PENDING,
        )

        data = TransitionSerializer(transition).data

        assert data['event'] == 'document.sent'
        assert data['status_changed'] is True
        assert data['document']['status'] == 'pending'
        assert data['signer'] is None
        assert [s['email'] for s in data['next_signers']] == ['alice@example.com']
