"""
WSGI config for the hospital operations project.

It exposes the WSGI callable as a module-level variable named ``application``.
The change feed needs the ASGI entrypoint (``hospital_ops.asgi``); plain
WSGI deployments serve the REST API only.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'hospital_ops.settings')

application = get_wsgi_application()
