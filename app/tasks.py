"""
Celery tasks for work kept off the request path

Tasks:
- refresh_creator_leaderboard: rebuild every creator_stats row from courses + purchases
- credit_referral_for_event: re-apply a failed referral credit (admin retry)
"""
import logging

from app.celery_app import celery_app
from app.database import SessionLocal

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.health_check")
def health_check():
    """Simple health check task for testing Celery setup"""
    return {"status": "ok", "message": "Celery is working"}


@celery_app.task(name="refresh_creator_leaderboard", bind=True, max_retries=0)
def refresh_creator_leaderboard(self):
    """
    Overwrite derived creator stats from source tables.
    Re-entrant: running it twice, or concurrently with purchases, converges.
    """
    from app.services.creator_stats import refresh_all

    db = SessionLocal()
    try:
        refreshed = refresh_all(db)
        return {"refreshed_count": refreshed}
    except Exception as e:
        db.rollback()
        logger.error("Leaderboard refresh failed: %s", e)
        return {"error": str(e)}
    finally:
        db.close()


@celery_app.task(name="app.tasks.credit_referral_for_event", bind=True, max_retries=1)
def credit_referral_for_event(self, event_id: int):
    """Re-apply the referral credit recorded as failed in event `event_id`."""
    from app.models.event import Event, EventStatus
    from app.services.purchases import retry_referral_credit

    db = SessionLocal()
    try:
        event = db.query(Event).filter(Event.id == event_id).first()
        if not event:
            return {"error": f"Event {event_id} not found"}

        if event.status != EventStatus.FAILED:
            return {"status": "skipped", "reason": "Event not in failed state"}

        if retry_referral_credit(db, event):
            return {"status": "success"}
        return {"status": "skipped", "reason": "Nothing to credit"}

    except Exception as e:
        db.rollback()
        if self.request.retries < self.max_retries:
            raise self.retry(exc=e, countdown=30)
        return {"error": str(e)}

    finally:
        db.close()
