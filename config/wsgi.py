"""
WSGI config for the biohasl.ink backend.

It exposes the WSGI callable as a module-level variable named ``application``.
"""

import logging
import os

import django
from django.core.wsgi import get_wsgi_application

logger = logging.getLogger(__name__)


def _migrate_if_requested():
    """
    Apply migrations at boot when AUTO_MIGRATE is set, for hosts that do not
    offer a release command.
    """
    auto_migrate = os.getenv("AUTO_MIGRATE", "").strip().lower()
    if auto_migrate not in ("1", "true", "yes"):
        return

    from django.core.management import call_command

    try:
        call_command("migrate", interactive=False, verbosity=1)
    except Exception:  # pragma: no cover - log best effort
        logger.exception("migrate failed at startup")
    else:
        logger.info("database up to date at startup")


os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
django.setup()
_migrate_if_requested()

application = get_wsgi_application()
