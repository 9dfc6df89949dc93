"""
ASGI config for the IIN licensing portal.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'iin_portal.settings')

application = get_asgi_application()
