import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "lovecakes.settings")

application = get_wsgi_application()

# Connect before the first request; an unreachable database ends the process here.
from apps.common.database import get_default_pool  # noqa: E402

get_default_pool().open()
