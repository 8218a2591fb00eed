import os
import logging
from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

logger = logging.getLogger(__name__)

try:
    application = get_wsgi_application()
except Exception as e:
    logger.error(f"WSGI error: {e}")
    raise
