"""
Django settings for the Prepare Heroes intake service.

Every secret and CRM constant comes from the environment. A local .env is
loaded first for development.
"""

import json
import os
from pathlib import Path
from dotenv import load_dotenv

from estate.constants import (
    COPPER_API_URL as DEFAULT_COPPER_API_URL,
    ESTATE_PLANNING_PIPELINE_ID,
    COMPLETED_QUIZ_STAGE_ID,
    PAID_STAGE_ID,
    FIELD_IDS,
)

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name, default):
    return os.environ.get(name, str(default)).lower() in ('true', '1', 'yes')


# =============================================================================
# SECURITY
# =============================================================================

SECRET_KEY = os.environ.get('SECRET_KEY', 'django-insecure-dev-only-local-testing')
DEBUG = _env_bool('DEBUG', False)
ALLOWED_HOSTS = [h.strip() for h in os.environ.get('ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',') if h.strip()]


# =============================================================================
# APPLICATION DEFINITION
# =============================================================================

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'estate',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'prepare_heroes.urls'

WSGI_APPLICATION = 'prepare_heroes.wsgi.application'

# The service keeps no local state; the database is only here for Django itself.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'America/Los_Angeles'
USE_I18N = True
USE_TZ = True

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': ['rest_framework.permissions.AllowAny'],
    'DEFAULT_RENDERER_CLASSES': ['rest_framework.renderers.JSONRenderer'],
    'DEFAULT_PARSER_CLASSES': ['rest_framework.parsers.JSONParser'],
    'UNAUTHENTICATED_USER': None,
}


# =============================================================================
# COPPER CRM
# =============================================================================

COPPER_API_URL = os.environ.get('COPPER_API_URL', DEFAULT_COPPER_API_URL)
COPPER_API_KEY = os.environ.get('COPPER_API_KEY', '')
COPPER_USER_EMAIL = os.environ.get('COPPER_USER_EMAIL', '')
COPPER_PIPELINE_ID = int(os.environ.get('COPPER_PIPELINE_ID', ESTATE_PLANNING_PIPELINE_ID))
COPPER_QUIZ_STAGE_ID = int(os.environ.get('COPPER_QUIZ_STAGE_ID', COMPLETED_QUIZ_STAGE_ID))
COPPER_PAID_STAGE_ID = int(os.environ.get('COPPER_PAID_STAGE_ID', PAID_STAGE_ID))
# JSON object, e.g. {"phone": 722611, "paymentLink": 727706}; merged over the defaults
COPPER_FIELD_IDS = {**FIELD_IDS, **json.loads(os.environ.get('COPPER_FIELD_IDS', '{}'))}
# Unset means no local timeout; the hosting request lifecycle bounds the call
COPPER_TIMEOUT = float(os.environ['COPPER_TIMEOUT']) if os.environ.get('COPPER_TIMEOUT') else None


# =============================================================================
# STRIPE
# =============================================================================

STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY', '')
STRIPE_WEBHOOK_SECRET = os.environ.get('STRIPE_WEBHOOK_SECRET', '')


# =============================================================================
# PUBLIC SITE
# =============================================================================

SITE_URL = os.environ.get('SITE_URL', '')
CHECKOUT_LINK_ENABLED = _env_bool('CHECKOUT_LINK_ENABLED', True)


# =============================================================================
# LOGGING
# =============================================================================

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
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'django.request': {
            'handlers': ['console'],
            'level': 'ERROR',
            'propagate': False,
        },
        'estate': {
            'handlers': ['console'],
            'level': os.environ.get('LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
