"""
Rating obligation.

Once a job is finished:

- the customer owes one review to every tasker whose application is
  accepted;
- every tasker who worked the job (accepted, or withdrawn after being
  accepted) owes one review to the customer.

A review exists at most once per (job, rater, ratee) and may be edited
exactly once.
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import Q

from .exceptions import AlreadyEdited, AlreadyReviewed, Forbidden, NotEligible, NotFound
from .models import Application, Job, Review, User
from .signals import emit_on_commit, review_submitted

logger = logging.getLogger(__name__)

WORKED_JOB = Q(status=Application.STATUS_ACCEPTED) | Q(
    status=Application.STATUS_WITHDRAWN, accepted_at__isnull=False
)


def _get_job(job_id):
    try:
        return Job.objects.get(pk=job_id)
    except Job.DoesNotExist:
        raise NotFound(f'Job with ID {job_id} does not exist.')


def rater_role_for(job, rater, ratee):
    """
    Work out which side of the obligation a rater/ratee pair is on.

    Args:
        job: Finished job
        rater: User writing the review
        ratee: User being rated

    Returns:
        str: Review.ROLE_CUSTOMER or Review.ROLE_TASKER

    Raises:
        NotEligible: If the pair has no rating obligation on this job
    """
    if job.status != Job.STATUS_FINISHED:
        raise NotEligible(f'Reviews can only be submitted for finished jobs. This job is {job.status}.')

    if rater.id == ratee.id:
        raise NotEligible('You cannot review yourself.')

    if rater.id == job.customer_id:
        hired = job.applications.filter(
            tasker=ratee, status=Application.STATUS_ACCEPTED
        ).exists()
        if not hired:
            raise NotEligible('You can only review taskers whose application was accepted.')
        return Review.ROLE_CUSTOMER

    if ratee.id != job.customer_id:
        raise NotEligible('Taskers can only review the customer who posted the job.')

    worked = job.applications.filter(WORKED_JOB, tasker=rater).exists()
    if not worked:
        raise NotEligible('You can only review customers of jobs you worked on.')
    return Review.ROLE_TASKER


def submit_review(job_id, rater, ratee_id, rating, comment=''):
    """
    Record the rater's review of the ratee for a finished job.

    Args:
        job_id: Job primary key
        rater: User writing the review
        ratee_id: Primary key of the user being rated
        rating: Integer from 1 to 5
        comment: Optional feedback

    Returns:
        Review: The created review

    Raises:
        NotFound: Unknown job or ratee
        NotEligible: Job not finished or no obligation between the pair
        AlreadyReviewed: A review for (job, rater, ratee) already exists
    """
    job = _get_job(job_id)

    try:
        ratee = User.objects.get(pk=ratee_id)
    except User.DoesNotExist:
        raise NotFound(f'User with ID {ratee_id} does not exist.')

    try:
        role = rater_role_for(job, rater, ratee)
    except NotEligible as e:
        logger.warning(
            f"Ineligible review attempt. Job ID: {job.id}, Rater ID: {rater.id}, "
            f"Ratee ID: {ratee.id}: {e.detail}"
        )
        raise

    if Review.objects.filter(job=job, rater=rater, ratee=ratee).exists():
        raise AlreadyReviewed()

    review = Review(
        job=job,
        rater=rater,
        ratee=ratee,
        rater_role=role,
        rating=rating,
        comment=(comment or '').strip(),
    )
    try:
        with transaction.atomic():
            review.save()
    except IntegrityError:
        logger.warning(
            f"Duplicate review rejected by constraint. Job ID: {job.id}, "
            f"Rater ID: {rater.id}, Ratee ID: {ratee.id}"
        )
        raise AlreadyReviewed()

    emit_on_commit(review_submitted, Review, review=review, created=True)
    logger.info(
        f"Review created. Review ID: {review.id}, Job ID: {job.id}, "
        f"Rater ID: {rater.id} ({role}), Ratee ID: {ratee.id}, Rating: {rating}"
    )
    return review


def edit_review(review_id, actor, rating=None, comment=None):
    """
    Apply the single permitted edit to a review.

    Raises:
        NotFound: Unknown review
        Forbidden: Actor is not the rater
        AlreadyEdited: The review was edited before
    """
    with transaction.atomic():
        try:
            review = Review.objects.select_for_update().get(pk=review_id)
        except Review.DoesNotExist:
            raise NotFound(f'Review with ID {review_id} does not exist.')

        if review.rater_id != actor.id:
            raise Forbidden('You can only edit your own reviews.')

        if review.edited:
            logger.warning(f"Second edit rejected. Review ID: {review.id}, User ID: {actor.id}")
            raise AlreadyEdited()

        if rating is not None:
            review.rating = rating
        if comment is not None:
            review.comment = comment.strip()
        review.edited = True
        review.save()

        emit_on_commit(review_submitted, Review, review=review, created=False)
        logger.info(f"Review edited. Review ID: {review.id}, Rating: {review.rating}")
        return review


def all_customer_ratings_complete(job):
    """
    True iff the job is finished and the customer has reviewed every tasker
    whose application is accepted.
    """
    if job.status != Job.STATUS_FINISHED:
        return False

    hired = set(
        job.applications.filter(status=Application.STATUS_ACCEPTED)
        .values_list('tasker_id', flat=True)
    )
    rated = set(
        Review.objects.filter(job=job, rater_id=job.customer_id, rater_role=Review.ROLE_CUSTOMER)
        .values_list('ratee_id', flat=True)
    )
    return hired <= rated


def rating_status(job):
    """
    Per-tasker view of the rating obligation on a job.

    Returns:
        dict: job_id, job_status, obligation_active,
              all_customer_ratings_complete, all_tasker_ratings_complete and
              a 'taskers' list with one entry per tasker who worked the job
    """
    customer_rated = set(
        Review.objects.filter(job=job, rater_role=Review.ROLE_CUSTOMER)
        .values_list('ratee_id', flat=True)
    )
    tasker_raters = set(
        Review.objects.filter(job=job, rater_role=Review.ROLE_TASKER)
        .values_list('rater_id', flat=True)
    )

    taskers = []
    for application in job.applications.filter(WORKED_JOB).order_by('accepted_at', 'id'):
        customer_owes = application.status == Application.STATUS_ACCEPTED
        taskers.append({
            'tasker_id': application.tasker_id,
            'application_id': application.id,
            'application_status': application.status,
            'customer_owes_review': customer_owes,
            'customer_rated_tasker': application.tasker_id in customer_rated,
            'tasker_rated_customer': application.tasker_id in tasker_raters,
        })

    finished = job.status == Job.STATUS_FINISHED
    return {
        'job_id': job.id,
        'job_status': job.status,
        'obligation_active': finished,
        'all_customer_ratings_complete': all_customer_ratings_complete(job),
        'all_tasker_ratings_complete': finished and all(t['tasker_rated_customer'] for t in taskers),
        'taskers': taskers,
    }


def pending_ratings_for(user):
    """
    Reviews the user still owes on finished jobs.

    Returns:
        list: dicts with job_id, job_title, ratee_id and rater_role
    """
    owed = []

    given = set(
        Review.objects.filter(rater=user).values_list('job_id', 'ratee_id')
    )

    hired = (
        Application.objects.filter(
            job__customer=user,
            job__status=Job.STATUS_FINISHED,
            status=Application.STATUS_ACCEPTED,
        )
        .select_related('job')
        .order_by('job_id', 'id')
    )
    for application in hired:
        if (application.job_id, application.tasker_id) not in given:
            owed.append({
                'job_id': application.job_id,
                'job_title': application.job.title,
                'ratee_id': application.tasker_id,
                'rater_role': Review.ROLE_CUSTOMER,
            })

    worked = (
        Application.objects.filter(WORKED_JOB, tasker=user, job__status=Job.STATUS_FINISHED)
        .select_related('job')
        .order_by('job_id', 'id')
    )
    for application in worked:
        if (application.job_id, application.job.customer_id) not in given:
            owed.append({
                'job_id': application.job_id,
                'job_title': application.job.title,
                'ratee_id': application.job.customer_id,
                'rater_role': Review.ROLE_TASKER,
            })

    return owed
