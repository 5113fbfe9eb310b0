"""
ASGI entry point. Required for the menu update (SSE) streams.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "apps.web.config.settings")

application = get_asgi_application()
