"""
WSGI config for GiftShelf Registry.

Exposes the WSGI callable as a module-level variable named ``application``;
gunicorn.conf.py points at it.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "giftshelf_registry.settings")

application = get_wsgi_application()
