"""
Celery application configuration and initialization.

Beat fires the ranking cycle every RANKING_INTERVAL_SECONDS; a run that
has not started before the next tick is dropped.
"""

from celery import Celery
from tradecup.core.config import settings

celery_app = Celery(
    "tradecup",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["tradecup.workers.tasks.ranking_tasks"],
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,  # 4 minutes soft limit
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    worker_hijack_root_logger=False,
)

celery_app.conf.beat_schedule = {
    'run-ranking-cycle': {
        'task': 'ranking.run_cycle',
        'schedule': float(settings.RANKING_INTERVAL_SECONDS),
        'options': {
            'expires': max(settings.RANKING_INTERVAL_SECONDS - 10, 1),
        }
    },
}
