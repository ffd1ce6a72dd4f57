"""
Builders for domain values and stored documents used across the tests.
"""

from datetime import datetime, timezone as dt_timezone
from itertools import count

from documents import models
from documents.choices import DocumentStatus, FieldType, WorkflowType
from documents.domain import Aggregate, Document, Field, Signer
from documents.services.field_types import default_properties

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=dt_timezone.utc)

_ids = count(1)


def next_id(prefix):
    return f'{prefix}-{next(_ids)}'


def make_document(**overrides):
    data = {
        'id': 'doc-1',
        'title': 'Lease agreement',
        'status': DocumentStatus.DRAFT,
        'workflow_type': WorkflowType.PARALLEL,
        'page_count': 2,
    }
    data.update(overrides)
    return Document(**data)


def make_signer(email='alice@example.com', **overrides):
    data = {
        'id': next_id('signer'),
        'document_id': 'doc-1',
        'email': email,
        'name': email.split('@')[0].title(),
        'access_token': next_id('token'),
    }
    data.update(overrides)
    return Signer(**data)


def make_field(field_type=FieldType.TEXT, **overrides):
    data = {
        'id': next_id('field'),
        'document_id': 'doc-1',
        'type': field_type,
        'page': 0,
        'x': 50,
        'y': 50,
        'width': 200,
        'height': 60,
        'signer_email': 'alice@example.com',
    }
    if 'properties' not in overrides:
        data['properties'] = default_properties(field_type)
    data.update(overrides)
    return Field(**data)


def make_aggregate(document=None, signers=(), fields=(), values=None):
    return Aggregate(
        document=document or make_document(),
        signers=tuple(signers),
        fields=tuple(fields),
        values=values or {},
    )


def create_document(signers=(), fields=(), **overrides):
    """
    Store a document with its signers and fields.

    Args:
        signers: dicts of Signer model kwargs
        fields: dicts of Field model kwargs; `field_type` defaults to text
    """
    data = {
        'title': 'Lease agreement',
        'workflow_type': WorkflowType.PARALLEL,
        'page_count': 1,
    }
    data.update(overrides)
    document = models.Document.objects.create(**data)
    for signer in signers:
        models.Signer.objects.create(document=document, **signer)
    for field in fields:
        field = dict(field)
        field_type = field.pop('field_type', FieldType.TEXT)
        geometry = {'page': 0, 'x': 50, 'y': 50, 'width': 200, 'height': 60}
        geometry.update(field)
        geometry.setdefault('properties', default_properties(field_type))
        models.Field.objects.create(document=document, field_type=field_type, **geometry)
    return document
