"""
Application lifecycle operations.

Edges (actor in parentheses):

    (create)             -> pending    tasker, job open, no active application, cooldown elapsed
    pending  -> accepted                owner, job open
    pending  -> rejected                owner, job open
    pending  -> withdrawn               tasker, job open, starts the reapplication cooldown
    accepted -> rejected  (terminate)   owner, job in progress, reason required
    accepted -> withdrawn (resign)      tasker, job in progress, reason required

Every transition locks the parent job first and then the application, the
same order used by core.jobs, so accepts, terminations and job transitions
on one job are serialized.
"""

import logging

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from . import cooldown
from .exceptions import Forbidden, InvalidTransition, NotFound
from .jobs import lock_job
from .models import Application, ApplicationNote, Job
from .signals import application_status_changed, emit_on_commit

logger = logging.getLogger(__name__)

OWNER_STATUSES = (Application.STATUS_ACCEPTED, Application.STATUS_REJECTED)
TASKER_STATUSES = (Application.STATUS_WITHDRAWN,)


def _add_note(application, kind, text):
    note = ApplicationNote(application=application, kind=kind, text=text.strip())
    note.full_clean()
    note.save()
    return note


def create_application(job_id, tasker, cover_letter='', proposed_budget=None, now=None):
    """
    Submit a tasker's application to an open job.

    Checks run in this order: role, job open, no active application for the
    pair, cooldown elapsed. A tasker re-applying to a job that is no longer
    open therefore gets InvalidTransition, not CooldownActive.

    Args:
        job_id: Job primary key
        tasker: Applying user
        cover_letter: Optional cover letter text
        proposed_budget: Optional Decimal counter-offer
        now: Evaluation time for the cooldown (defaults to timezone.now())

    Returns:
        Application: The new pending application

    Raises:
        Forbidden: Actor is not a tasker, or owns the job
        NotFound: Unknown job
        InvalidTransition: Job not open, or an active application exists
        CooldownActive: Tasker withdrew from this job less than an hour ago
    """
    if now is None:
        now = timezone.now()

    if not tasker.is_tasker():
        logger.warning(f"Non-tasker attempted to apply. User ID: {tasker.id}, Job ID: {job_id}")
        raise Forbidden('Only taskers can apply to jobs.')

    with transaction.atomic():
        job = lock_job(job_id)

        if job.customer_id == tasker.id:
            raise Forbidden('You cannot apply to your own job.')

        if not job.is_open():
            logger.warning(
                f"Application to non-open job rejected. Job ID: {job.id}, "
                f"Status: {job.status}, Tasker ID: {tasker.id}"
            )
            raise InvalidTransition(
                f'Applications can only be submitted to open jobs. This job is {job.status}.'
            )

        existing = job.applications.filter(
            tasker=tasker, status__in=Application.ACTIVE_STATUSES
        ).first()
        if existing is not None:
            raise InvalidTransition(
                f'You already have an active application (ID {existing.id}) for this job.'
            )

        cooldown.ensure_cooldown_elapsed(job, tasker, now=now)

        application = Application(
            job=job,
            tasker=tasker,
            status=Application.STATUS_PENDING,
            proposed_budget=proposed_budget,
        )
        try:
            with transaction.atomic():
                application.save()
        except IntegrityError:
            raise InvalidTransition('You already have an active application for this job.')

        if cover_letter and cover_letter.strip():
            _add_note(application, ApplicationNote.KIND_COVER_LETTER, cover_letter)

        Job.objects.filter(pk=job.pk).update(applications_count=F('applications_count') + 1)

        emit_on_commit(
            application_status_changed, Application,
            application=application, old_status=None,
            new_status=Application.STATUS_PENDING, actor=tasker,
        )

        logger.info(
            f"Application created. Application ID: {application.id}, "
            f"Job ID: {job.id}, Tasker ID: {tasker.id}"
        )
        return application


def _lock_application(application_id):
    job_id = (
        Application.objects.filter(pk=application_id)
        .values_list('job_id', flat=True)
        .first()
    )
    if job_id is None:
        raise NotFound(f'Application with ID {application_id} does not exist.')

    job = lock_job(job_id)
    application = Application.objects.select_for_update().get(pk=application_id)
    application.job = job
    return job, application


def _ensure_actor(job, application, actor, new_status):
    if new_status in OWNER_STATUSES:
        if not job.is_owned_by(actor):
            logger.warning(
                f"Unauthorized application update. Application ID: {application.id}, "
                f"Requested: {new_status}, User ID: {getattr(actor, 'id', None)}"
            )
            raise Forbidden(f'Only the job owner can set an application to {new_status}.')
    elif new_status in TASKER_STATUSES:
        if application.tasker_id != getattr(actor, 'id', None):
            logger.warning(
                f"Unauthorized application withdrawal. Application ID: {application.id}, "
                f"User ID: {getattr(actor, 'id', None)}"
            )
            raise Forbidden('Only the applicant can withdraw this application.')
    else:
        raise InvalidTransition(f'Invalid application status: {new_status}.')


def transition_application(application_id, actor, new_status, reason=None, now=None, expected_status=None):
    """
    Apply one edge of the application state machine.

    The edge is chosen from the application's current status and the
    requested status; terminating or resigning an accepted application
    requires a non-empty reason.

    Args:
        application_id: Application primary key
        actor: User requesting the change
        new_status: Target status
        reason: Termination or resignation reason
        now: Transition time (defaults to timezone.now())
        expected_status: If given, the current status the caller expects

    Returns:
        Application: The updated application

    Raises:
        NotFound, Forbidden, InvalidTransition, ValidationError (missing reason)
    """
    if now is None:
        now = timezone.now()

    with transaction.atomic():
        job, application = _lock_application(application_id)
        _ensure_actor(job, application, actor, new_status)

        old_status = application.status
        if expected_status is not None and old_status != expected_status:
            raise InvalidTransition(
                f'Application must be {expected_status} for this action. It is {old_status}.'
            )

        is_valid, error_message = application.can_transition_to(new_status, job.status)
        if not is_valid:
            logger.warning(
                f"Rejected application transition. Application ID: {application.id}, "
                f"{old_status} -> {new_status}, Job Status: {job.status}: {error_message}"
            )
            raise InvalidTransition(error_message)

        leaving_accepted = old_status == Application.STATUS_ACCEPTED
        if leaving_accepted and not (reason and reason.strip()):
            action = 'terminate' if new_status == Application.STATUS_REJECTED else 'resign from'
            raise ValidationError({'reason': [f'A reason is required to {action} an accepted application.']})

        application.status = new_status
        update_fields = ['status', 'updated_at']
        if new_status == Application.STATUS_ACCEPTED:
            application.accepted_at = now
            update_fields.append('accepted_at')
        else:
            application.closed_at = now
            update_fields.append('closed_at')
        application.save(update_fields=update_fields)

        if leaving_accepted:
            kind = (
                ApplicationNote.KIND_TERMINATION_REASON
                if new_status == Application.STATUS_REJECTED
                else ApplicationNote.KIND_RESIGNATION_REASON
            )
            _add_note(application, kind, reason)
        elif new_status == Application.STATUS_WITHDRAWN:
            cooldown.start_cooldown(job, application.tasker, now=now)

        emit_on_commit(
            application_status_changed, Application,
            application=application, old_status=old_status,
            new_status=new_status, actor=actor,
        )

        logger.info(
            f"Application status updated. Application ID: {application.id}, "
            f"Old Status: {old_status}, New Status: {new_status}, "
            f"Job ID: {job.id}, User ID: {actor.id}"
        )
        return application


def accept_application(application_id, actor, now=None):
    """Hire the tasker (pending -> accepted)."""
    return transition_application(
        application_id, actor, Application.STATUS_ACCEPTED,
        now=now, expected_status=Application.STATUS_PENDING,
    )


def reject_application(application_id, actor, now=None):
    """Decline a pending application. No cooldown is imposed."""
    return transition_application(
        application_id, actor, Application.STATUS_REJECTED,
        now=now, expected_status=Application.STATUS_PENDING,
    )


def withdraw_application(application_id, actor, now=None):
    """Tasker cancels their own pending application and starts the cooldown."""
    return transition_application(
        application_id, actor, Application.STATUS_WITHDRAWN,
        now=now, expected_status=Application.STATUS_PENDING,
    )


def terminate_application(application_id, actor, reason, now=None):
    """Owner fires an accepted tasker while the job is in progress."""
    return transition_application(
        application_id, actor, Application.STATUS_REJECTED,
        reason=reason, now=now, expected_status=Application.STATUS_ACCEPTED,
    )


def resign_application(application_id, actor, reason, now=None):
    """Accepted tasker resigns while the job is in progress."""
    return transition_application(
        application_id, actor, Application.STATUS_WITHDRAWN,
        reason=reason, now=now, expected_status=Application.STATUS_ACCEPTED,
    )


def partition_applications(job, applications=None):
    """
    Group a job's applications for display.

    Args:
        job: Job whose applications are grouped
        applications: Optional pre-fetched (and possibly pre-ordered)
            applications of the job; queried when omitted

    Returns:
        dict: Lists of Application keyed by
            'pending'    - awaiting a decision
            'active'     - accepted (hired)
            'terminated' - rejected; Application.was_fired() tells a firing
                           from a plain rejection
            'withdrawn'  - withdrawn; Application.has_resigned() tells a
                           resignation from a pending cancellation
    """
    groups = {'pending': [], 'active': [], 'terminated': [], 'withdrawn': []}
    key_for_status = {
        Application.STATUS_PENDING: 'pending',
        Application.STATUS_ACCEPTED: 'active',
        Application.STATUS_REJECTED: 'terminated',
        Application.STATUS_WITHDRAWN: 'withdrawn',
    }

    if applications is None:
        applications = (
            job.applications.all()
            .select_related('tasker')
            .prefetch_related('notes')
            .order_by('created_at')
        )
    for application in applications:
        groups[key_for_status[application.status]].append(application)
    return groups


def reapplication_status(job, tasker, now=None):
    """
    Tell a tasker whether they can apply to a job right now.

    Returns:
        dict: job_id, active_application_id (or None), seconds_remaining,
              cooldown_active, can_apply
    """
    active = job.applications.filter(
        tasker=tasker, status__in=Application.ACTIVE_STATUSES
    ).values_list('id', flat=True).first()
    remaining = cooldown.seconds_remaining(job, tasker, now=now)

    return {
        'job_id': job.id,
        'active_application_id': active,
        'seconds_remaining': remaining,
        'cooldown_active': remaining > 0,
        'can_apply': job.is_open() and active is None and remaining == 0,
    }
