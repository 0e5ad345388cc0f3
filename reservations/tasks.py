# ==================== RESERVATIONS/TASKS.PY (CELERY TASKS) ====================
from celery import shared_task
from django.conf import settings
from django.utils import timezone
from .models import Reservation
from datetime import timedelta
import logging

logger = logging.getLogger(__name__)


@shared_task
def mark_no_show_reservations():
    """Release slots held by reservations whose check-in window has passed"""
    cutoff = timezone.now() - timedelta(minutes=settings.CHECK_IN_WINDOW_MINUTES)
    missed = Reservation.objects.filter(
        status__in=['pending', 'confirmed'],
        start_time__lt=cutoff
    )

    count = 0
    for reservation in missed:
        reservation.transition_to('no_show')
        reservation.save(update_fields=['status', 'updated_at'])
        count += 1

    logger.info(f"Marked {count} reservations as no-show")
    return count


@shared_task
def auto_complete_reservations():
    """Complete active reservations that were never checked out"""
    now = timezone.now()
    cutoff = now - timedelta(hours=settings.AUTO_COMPLETE_GRACE_HOURS)
    overdue = Reservation.objects.filter(status='active', end_time__lt=cutoff)

    count = 0
    for reservation in overdue:
        reservation.transition_to('completed')
        reservation.check_out_time = now
        reservation.check_out_method = 'auto'
        reservation.save(update_fields=['status', 'check_out_time', 'check_out_method', 'updated_at'])
        count += 1

    logger.info(f"Auto-completed {count} reservations")
    return count
