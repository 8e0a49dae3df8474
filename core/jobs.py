"""
Job lifecycle operations.

Each operation runs in one transaction with the job row locked, so a
transition that depends on the job's applications (starting a job needs an
accepted application) reads them under the same lock that serializes
accept/terminate calls on that job.
"""

import logging

from django.db import transaction
from django.utils import timezone

from .exceptions import Forbidden, InvalidTransition, NotFound
from .models import Application, Job
from .signals import emit_on_commit, job_status_changed, rating_obligation_opened

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('title', 'description', 'budget', 'city', 'province', 'required_skills')

_TIMESTAMP_FIELDS = {
    Job.STATUS_IN_PROGRESS: 'started_at',
    Job.STATUS_FINISHED: 'finished_at',
    Job.STATUS_CANCELLED: 'cancelled_at',
}


def lock_job(job_id):
    """
    Fetch a job with a row lock. Must be called inside transaction.atomic().

    Raises:
        NotFound: If the job does not exist
    """
    try:
        return Job.objects.select_for_update().get(pk=job_id)
    except Job.DoesNotExist:
        raise NotFound(f'Job with ID {job_id} does not exist.')


def _ensure_owner(job, actor, action):
    if not job.is_owned_by(actor):
        logger.warning(
            f"Unauthorized job {action} attempt. Job ID: {job.id}, "
            f"User ID: {getattr(actor, 'id', None)}"
        )
        raise Forbidden(f'Only the job owner can {action} this job.')


def create_job(actor, **fields):
    """
    Post a new job in the open state.

    Args:
        actor: Customer (or admin) posting the job
        **fields: Descriptive fields (title, description, budget, ...)

    Returns:
        Job: The created job

    Raises:
        Forbidden: If the actor is not a customer or admin
    """
    if not (actor.is_customer() or actor.is_admin()):
        logger.warning(f"Non-customer attempted job creation. User ID: {actor.id}")
        raise Forbidden('Only customers can post jobs.')

    job = Job(customer=actor, status=Job.STATUS_OPEN, **fields)
    job.save()

    logger.info(f"Job created. Job ID: {job.id}, Customer ID: {actor.id}, Budget: {job.budget}")
    return job


def edit_job(job_id, actor, **changes):
    """
    Update descriptive fields of an open job.

    Only EDITABLE_FIELDS are applied; anything else is ignored.

    Raises:
        NotFound, Forbidden, InvalidTransition
    """
    with transaction.atomic():
        job = lock_job(job_id)
        _ensure_owner(job, actor, 'edit')

        if not job.is_open():
            raise InvalidTransition(f'Jobs can only be edited while open. This job is {job.status}.')

        updated = []
        for field in EDITABLE_FIELDS:
            if field in changes:
                setattr(job, field, changes[field])
                updated.append(field)

        if updated:
            job.save(update_fields=updated + ['updated_at'])

        logger.info(f"Job edited. Job ID: {job.id}, Fields: {', '.join(updated) or 'none'}")
        return job


def delete_job(job_id, actor):
    """
    Delete an open job that has not hired anyone.

    Raises:
        NotFound, Forbidden, InvalidTransition
    """
    with transaction.atomic():
        job = lock_job(job_id)
        _ensure_owner(job, actor, 'delete')

        if not job.is_open():
            raise InvalidTransition(f'Jobs can only be deleted while open. This job is {job.status}.')

        if job.applications.filter(status=Application.STATUS_ACCEPTED).exists():
            raise InvalidTransition('Cannot delete a job with accepted applications.')

        job.delete()
        logger.info(f"Job deleted. Job ID: {job_id}, User ID: {actor.id}")


def _transition(job_id, actor, new_status, action, now=None):
    if now is None:
        now = timezone.now()

    with transaction.atomic():
        job = lock_job(job_id)
        _ensure_owner(job, actor, action)

        accepted = list(
            job.applications.filter(status=Application.STATUS_ACCEPTED).select_related('tasker')
        )
        is_valid, error_message = job.can_transition_to(new_status, accepted_count=len(accepted))
        if not is_valid:
            logger.warning(
                f"Rejected job transition. Job ID: {job.id}, "
                f"{job.status} -> {new_status}: {error_message}"
            )
            raise InvalidTransition(error_message)

        old_status = job.status
        job.status = new_status
        timestamp_field = _TIMESTAMP_FIELDS[new_status]
        setattr(job, timestamp_field, now)
        job.save(update_fields=['status', timestamp_field, 'updated_at'])

        emit_on_commit(
            job_status_changed, Job,
            job=job, old_status=old_status, new_status=new_status, actor=actor,
        )
        if new_status == Job.STATUS_FINISHED:
            for application in accepted:
                emit_on_commit(rating_obligation_opened, Job, job=job, application=application)

        logger.info(
            f"Job status updated. Job ID: {job.id}, Old Status: {old_status}, "
            f"New Status: {new_status}, User ID: {actor.id}"
        )
        return job


def start_job(job_id, actor, now=None):
    """
    Move an open job with at least one accepted application to in_progress.

    Raises:
        NotFound: Unknown job
        Forbidden: Actor is not the owner or an admin
        InvalidTransition: Job is not open or nobody has been hired
    """
    return _transition(job_id, actor, Job.STATUS_IN_PROGRESS, 'start', now=now)


def finish_job(job_id, actor, now=None):
    """
    Move an in-progress job to finished and open the rating obligation for
    every accepted application.
    """
    return _transition(job_id, actor, Job.STATUS_FINISHED, 'finish', now=now)


def cancel_job(job_id, actor, now=None):
    """Cancel an open or in-progress job. No application can change afterwards."""
    return _transition(job_id, actor, Job.STATUS_CANCELLED, 'cancel', now=now)
