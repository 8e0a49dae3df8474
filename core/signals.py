"""
Domain events and signal receivers for the job engagement engine.

Lifecycle modules emit the custom signals below once the surrounding
transaction commits, so receivers never observe a transition that was
rolled back. Notification delivery subscribes to these signals; the
receiver defined here only records them in the log.

The post_save receiver on Review keeps the cached average ratings on User
in sync.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Avg
from django.db.models.signals import post_save
from django.dispatch import Signal, receiver

from .models import Review, User

logger = logging.getLogger(__name__)


# Sent with: job, old_status, new_status, actor
job_status_changed = Signal()

# Sent with: application, old_status, new_status, actor
application_status_changed = Signal()

# Sent with: job, application (one event per accepted application)
rating_obligation_opened = Signal()

# Sent with: review, created
review_submitted = Signal()


def emit_on_commit(signal, sender, **kwargs):
    """
    Send a domain signal after the current transaction commits.

    Outside of a transaction the signal is sent immediately.

    Args:
        signal: Signal instance to send
        sender: Model class sending the event
        **kwargs: Event payload
    """
    transaction.on_commit(lambda: signal.send(sender=sender, **kwargs))


@receiver(job_status_changed)
def log_job_status_changed(sender, job, old_status, new_status, actor, **kwargs):
    logger.info(
        f"Event job_status_changed: job={job.id}, "
        f"{old_status} -> {new_status}, actor={getattr(actor, 'id', None)}"
    )


@receiver(application_status_changed)
def log_application_status_changed(sender, application, old_status, new_status, actor, **kwargs):
    logger.info(
        f"Event application_status_changed: application={application.id}, "
        f"job={application.job_id}, tasker={application.tasker_id}, "
        f"{old_status} -> {new_status}, actor={getattr(actor, 'id', None)}"
    )


@receiver(rating_obligation_opened)
def log_rating_obligation_opened(sender, job, application, **kwargs):
    logger.info(
        f"Event rating_obligation_opened: job={job.id}, "
        f"customer={job.customer_id}, tasker={application.tasker_id}"
    )


@receiver(review_submitted)
def log_review_submitted(sender, review, created, **kwargs):
    logger.info(
        f"Event review_submitted: review={review.id}, job={review.job_id}, "
        f"rater={review.rater_id}, ratee={review.ratee_id}, "
        f"{'created' if created else 'edited'}"
    )


def round_average(avg_rating):
    """Cached-average form of a raw Avg() result: 2 places, 0.00 when None."""
    if avg_rating is None:
        return Decimal('0.00')
    return Decimal(str(avg_rating)).quantize(Decimal('0.01'))


def average_rating(queryset):
    """Rounded average rating of a Review queryset."""
    return round_average(queryset.aggregate(avg=Avg('rating'))['avg'])


@receiver(post_save, sender=Review)
def update_ratings_on_review_save(sender, instance, created, **kwargs):
    """
    Recalculate the ratee's cached average when a review is created or edited.

    Reviews written by customers feed avg_rating_as_tasker; reviews written
    by taskers feed avg_rating_as_customer.

    Runs inside the review's transaction with the ratee row locked, so a
    failure here rolls back the review as well.

    Args:
        sender: The Review model class
        instance: The Review instance that was saved
        created: Boolean indicating if this is a new review
        **kwargs: Additional keyword arguments
    """
    try:
        with transaction.atomic():
            user = User.objects.select_for_update().get(pk=instance.ratee_id)

            if instance.rater_role == Review.ROLE_CUSTOMER:
                user.avg_rating_as_tasker = average_rating(
                    Review.objects.filter(ratee=user, rater_role=Review.ROLE_CUSTOMER)
                )
                User.objects.filter(pk=user.pk).update(
                    avg_rating_as_tasker=user.avg_rating_as_tasker
                )
            else:
                user.avg_rating_as_customer = average_rating(
                    Review.objects.filter(ratee=user, rater_role=Review.ROLE_TASKER)
                )
                User.objects.filter(pk=user.pk).update(
                    avg_rating_as_customer=user.avg_rating_as_customer
                )

            action = "created" if created else "updated"
            logger.info(
                f"Updated ratings for review {instance.id} ({action}): "
                f"ratee={user.email}, rating={instance.rating}"
            )

    except Exception as e:
        logger.error(
            f"Error updating ratings for review {instance.id}: {e}",
            exc_info=True
        )
        raise
