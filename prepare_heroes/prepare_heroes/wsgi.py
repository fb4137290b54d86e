"""WSGI config for the Prepare Heroes intake service."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'prepare_heroes.settings')

application = get_wsgi_application()
