"""
Reapplication cooldown.

When a tasker withdraws a pending application, the (job, tasker) pair is
blocked from re-applying for REAPPLICATION_COOLDOWN_SECONDS (one hour by
default). The anchor is stored server-side; clients only ever see the
remaining seconds.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from .exceptions import CooldownActive
from .models import ReapplicationCooldown

logger = logging.getLogger(__name__)


def cooldown_period():
    return timedelta(seconds=getattr(settings, 'REAPPLICATION_COOLDOWN_SECONDS', 3600))


def start_cooldown(job, tasker, now=None):
    """
    Record (or restart) the cooldown anchor for a (job, tasker) pair.

    Args:
        job: Job the tasker withdrew from
        tasker: Tasker who withdrew
        now: Anchor time (defaults to timezone.now())

    Returns:
        ReapplicationCooldown: The stored anchor
    """
    if now is None:
        now = timezone.now()

    cooldown, _created = ReapplicationCooldown.objects.update_or_create(
        job=job,
        tasker=tasker,
        defaults={'started_at': now},
    )

    logger.info(
        f"Reapplication cooldown started. Job ID: {job.id}, "
        f"Tasker ID: {tasker.id}, Expires: {cooldown.expires_at(cooldown_period())}"
    )
    return cooldown


def seconds_remaining(job, tasker, now=None):
    """
    Seconds left before the tasker may re-apply to the job.

    An elapsed anchor is discarded on read.

    Args:
        job: Job instance or primary key
        tasker: User instance or primary key
        now: Evaluation time (defaults to timezone.now())

    Returns:
        int: Remaining whole seconds (rounded up), 0 when no cooldown applies
    """
    if now is None:
        now = timezone.now()

    cooldown = ReapplicationCooldown.objects.filter(job=job, tasker=tasker).first()
    if cooldown is None:
        return 0

    remaining = cooldown.remaining(now, cooldown_period())
    if remaining <= timedelta(0):
        cooldown.delete()
        return 0

    seconds = remaining.total_seconds()
    return int(seconds) + (1 if seconds % 1 else 0)


def ensure_cooldown_elapsed(job, tasker, now=None):
    """
    Raise CooldownActive if the tasker is still inside the cooldown window.

    Raises:
        CooldownActive: With the remaining seconds for display
    """
    remaining = seconds_remaining(job, tasker, now=now)
    if remaining > 0:
        logger.warning(
            f"Re-application blocked by cooldown. Job ID: {getattr(job, 'id', job)}, "
            f"Tasker ID: {getattr(tasker, 'id', tasker)}, Seconds remaining: {remaining}"
        )
        raise CooldownActive(remaining)


def purge_expired(now=None):
    """
    Delete every elapsed cooldown anchor.

    Returns:
        int: Number of anchors deleted
    """
    if now is None:
        now = timezone.now()

    deleted, _ = ReapplicationCooldown.objects.filter(
        started_at__lte=now - cooldown_period()
    ).delete()
    return deleted
