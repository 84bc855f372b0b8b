"""
Celery worker retrying the status sync outbox with SELECT FOR UPDATE SKIP LOCKED.
"""
from celery import Celery
import logging
from .config import settings
from .database import SessionLocal
from .integrations.reclamos_api import ReclamosApiClient
from .use_cases.status_sync import process_pending_status_syncs

logger = logging.getLogger(__name__)

celery_app = Celery(
    "crew_dispatch",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
)


@celery_app.task(name="process_status_sync_outbox")
def process_status_sync_outbox(batch_size: int | None = None):
    """
    Push pending status updates to the Reclamos API.

    Rows are locked with FOR UPDATE SKIP LOCKED so concurrent workers never
    deliver the same row twice.
    """
    db = SessionLocal()

    try:
        result = process_pending_status_syncs(
            db=db,
            client=ReclamosApiClient(),
            batch_size=batch_size,
        )
        logger.info(f"✅ Synced {result['sent']}/{result['total_locked']} pending status updates")
        return result

    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error processing status sync outbox: {e}", exc_info=True)
        raise

    finally:
        db.close()


# Schedule periodic processing
celery_app.conf.beat_schedule = {
    'process-status-sync-outbox': {
        'task': 'process_status_sync_outbox',
        'schedule': settings.STATUS_SYNC_INTERVAL_SECONDS,
    },
}
