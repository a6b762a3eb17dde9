# vidshare/worker.py

"""
celery -A vidshare.worker worker --loglevel=info
celery -A vidshare.worker flower --port=5555
"""

from sentry_sdk.integrations.celery import CeleryIntegration

from vidshare import tasks
from vidshare.config import Settings
from vidshare.logger import init_sentry, setup_logging

settings = Settings.from_env()
setup_logging(settings.LOG_LEVEL)
init_sentry(settings.SENTRY_DSN, integrations=[CeleryIntegration()])

# shared tasks from vidshare.tasks attach to this app when it finalizes
celery_app = tasks.build_celery(settings)
