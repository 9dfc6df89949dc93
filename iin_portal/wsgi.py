"""
WSGI config for the IIN licensing portal.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'iin_portal.settings')

application = get_wsgi_application()
