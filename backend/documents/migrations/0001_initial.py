from django.conf import settings
from django.db import migrations, models
import django.core.validators
import django.db.models.deletion
import documents.models
import documents.services.token_utils
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Document',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=255)),
                ('file', models.FileField(blank=True, null=True, upload_to=documents.models.document_upload_path)),
                ('page_count', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('scheduled', 'Scheduled'), ('pending', 'Pending signatures'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='draft', max_length=20)),
                ('workflow_type', models.CharField(choices=[('single', 'Single signer'), ('sequential', 'Sequential signing (signers in order)'), ('parallel', 'Parallel signing (any order)')], default='single', max_length=20)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('scheduled_send_at', models.DateTimeField(blank=True, null=True)),
                ('sent_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('reminder_settings', models.JSONField(blank=True, default=documents.models.default_reminder_settings)),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='signflow_documents', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Signer',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('email', models.EmailField(max_length=254)),
                ('name', models.CharField(max_length=255)),
                ('signing_order', models.PositiveIntegerField(blank=True, help_text='Position in a sequential workflow (null for single/parallel)', null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('signed', 'Signed'), ('declined', 'Declined')], default='pending', max_length=20)),
                ('access_token', models.CharField(db_index=True, default=documents.services.token_utils.generate_access_token, editable=False, max_length=64, unique=True)),
                ('signed_at', models.DateTimeField(blank=True, null=True)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.TextField(blank=True, null=True)),
                ('reminder_count', models.PositiveIntegerField(default=0)),
                ('last_reminder_sent_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('document', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='signers', to='documents.document')),
            ],
            options={
                'ordering': ['signing_order', 'created_at'],
            },
        ),
        migrations.CreateModel(
            name='Field',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('field_type', models.CharField(choices=[('signature', 'Signature'), ('initials', 'Initials'), ('date', 'Date'), ('text', 'Text Input'), ('checkbox', 'Checkbox'), ('radio', 'Radio Button Group'), ('dropdown', 'Dropdown Select'), ('textarea', 'Multi-line Text')], max_length=20)),
                ('page', models.PositiveIntegerField(default=0)),
                ('x', models.FloatField()),
                ('y', models.FloatField()),
                ('width', models.FloatField()),
                ('height', models.FloatField()),
                ('required', models.BooleanField(default=True)),
                ('signer_email', models.EmailField(blank=True, max_length=254, null=True)),
                ('properties', models.JSONField(blank=True, default=dict)),
                ('visibility_rules', models.JSONField(blank=True, null=True)),
                ('calculation', models.JSONField(blank=True, null=True)),
                ('value', models.JSONField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('document', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='fields', to='documents.document')),
            ],
            options={
                'ordering': ['page', 'y', 'x'],
            },
        ),
        migrations.CreateModel(
            name='SentReminder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reminder_type', models.CharField(help_text="'<days>_day' before expiry", max_length=20)),
                ('sent_at', models.DateTimeField(auto_now_add=True)),
                ('signer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sent_reminders', to='documents.signer')),
            ],
            options={
                'ordering': ['-sent_at'],
            },
        ),
        migrations.AddConstraint(
            model_name='signer',
            constraint=models.UniqueConstraint(fields=('document', 'email'), name='unique_signer_email_per_document'),
        ),
        migrations.AddConstraint(
            model_name='signer',
            constraint=models.UniqueConstraint(condition=models.Q(('signing_order__isnull', False)), fields=('document', 'signing_order'), name='unique_signing_order_per_document'),
        ),
        migrations.AddConstraint(
            model_name='sentreminder',
            constraint=models.UniqueConstraint(fields=('signer', 'reminder_type'), name='unique_reminder_per_signer_and_type'),
        ),
    ]
