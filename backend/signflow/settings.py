"""
Django settings for signflow project.

Values come from the environment with development defaults.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'signflow-dev-secret-key')

DEBUG = os.environ.get('DJANGO_DEBUG', 'true').lower() in ('1', 'true', 'yes')

ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', '').split(',') if h]

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'documents',
]

MIDDLEWARE = []

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('SIGNFLOW_DB_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

USE_TZ = True
TIME_ZONE = 'UTC'

MEDIA_ROOT = os.environ.get('SIGNFLOW_MEDIA_ROOT', str(BASE_DIR / 'media'))
MEDIA_URL = '/media/'

# Signing workflow defaults
SIGNFLOW_DEFAULT_REMINDER_INTERVALS = [1, 3, 7]
SIGNFLOW_DEFAULT_PAGE_SIZE = (612, 792)  # US letter, points

# Celery
CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'memory://')
CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', 'cache+memory://')
CELERY_TASK_ALWAYS_EAGER = os.environ.get('CELERY_TASK_ALWAYS_EAGER', 'false').lower() in ('1', 'true', 'yes')
CELERY_BEAT_SCHEDULE = {
    'dispatch-due-reminders': {
        'task': 'documents.tasks.dispatch_due_reminders',
        'schedule': 15 * 60,
    },
    'send-scheduled-documents': {
        'task': 'documents.tasks.send_scheduled_documents',
        'schedule': 60,
    },
    'expire-documents': {
        'task': 'documents.tasks.expire_documents',
        'schedule': 60 * 60,
    },
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'simple',
        },
    },
    'loggers': {
        'documents': {
            'handlers': ['console'],
            'level': os.environ.get('SIGNFLOW_LOG_LEVEL', 'INFO'),
        },
    },
}
