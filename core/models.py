"""
Models for the Tasker Marketplace job engagement lifecycle.
"""

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from .validators import validate_phone_number, validate_skill_list


def split_skills(value):
    """
    Split a comma separated skill string into normalized skill names.

    Args:
        value: Comma separated string (may be empty)

    Returns:
        list: Lowercase, stripped, de-duplicated skill names in input order
    """
    skills = []
    for raw in (value or '').split(','):
        skill = raw.strip().lower()
        if skill and skill not in skills:
            skills.append(skill)
    return skills


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address (login identifier)
    - phone_number: Optional phone number with validation
    - user_type: 'customer', 'tasker' or 'admin'
    - skills: Comma separated skills offered by a tasker
    - avg_rating_as_tasker: Cached average of reviews received as a tasker
    - avg_rating_as_customer: Cached average of reviews received as a customer
    - created_at: Account creation timestamp
    - updated_at: Last update timestamp
    """

    USER_TYPE_CHOICES = [
        ('customer', 'Customer'),
        ('tasker', 'Tasker'),
        ('admin', 'Administrator'),
    ]

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    phone_number = models.CharField(
        _('phone number'),
        max_length=20,
        blank=True,
        default='',
        validators=[validate_phone_number],
        help_text=_('Optional. Enter phone number in international format.')
    )

    user_type = models.CharField(
        _('user type'),
        max_length=10,
        choices=USER_TYPE_CHOICES,
        blank=False,
        null=False,
        help_text=_('Required. Customers post jobs, taskers apply to them.')
    )

    skills = models.CharField(
        _('skills'),
        max_length=500,
        blank=True,
        default='',
        validators=[validate_skill_list],
        help_text=_('Comma separated list of skills offered by a tasker.')
    )

    avg_rating_as_tasker = models.DecimalField(
        _('average rating as tasker'),
        max_digits=3,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[
            MinValueValidator(Decimal('0.00'), message=_('Rating cannot be negative.')),
            MaxValueValidator(Decimal('5.00'), message=_('Rating cannot exceed 5.00.'))
        ],
        help_text=_('Average rating received from customers.')
    )

    avg_rating_as_customer = models.DecimalField(
        _('average rating as customer'),
        max_digits=3,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[
            MinValueValidator(Decimal('0.00'), message=_('Rating cannot be negative.')),
            MaxValueValidator(Decimal('5.00'), message=_('Rating cannot exceed 5.00.'))
        ],
        help_text=_('Average rating received from taskers.')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the account was created.')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the account was last updated.')
    )

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user_type'], name='core_user_type_idx'),
        ]

    def __str__(self):
        """Return email as string representation."""
        return self.email or self.username

    def is_customer(self):
        """Return True if the user posts jobs."""
        return self.user_type == 'customer'

    def is_tasker(self):
        """Return True if the user applies to jobs."""
        return self.user_type == 'tasker'

    def is_admin(self):
        """
        Check if user may act on any job or application.

        Returns:
            bool: True for user_type 'admin' and for Django staff accounts
        """
        return self.user_type == 'admin' or self.is_staff

    def skill_list(self):
        return split_skills(self.skills)

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Email is provided and lowercase for case-insensitive uniqueness
        - User type is provided

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.email:
            self.email = self.email.lower()

        if not self.email:
            raise ValidationError({
                'email': _('Email address is required.')
            })

        if not self.user_type:
            raise ValidationError({
                'user_type': _('User type is required.')
            })

    def save(self, *args, **kwargs):
        """
        Override save to normalize the email address.

        Creation skips full_clean so duplicate emails surface as the
        database IntegrityError; updates are fully validated.
        """
        if self.email:
            self.email = self.email.lower()

        if self.pk is not None:
            self.full_clean()

        super().save(*args, **kwargs)


# ============================================================================
# Job Model
# ============================================================================

class Job(models.Model):
    """
    A unit of work posted by a customer.

    Fields:
    - customer: Owner of the job (immutable after creation)
    - title, description, budget, city, province, required_skills:
      descriptive fields, editable only while the job is open
    - status: open, in_progress, finished or cancelled
    - applications_count: Cached number of applications ever received
    - started_at / finished_at / cancelled_at: Transition timestamps
    - created_at / updated_at: Row timestamps

    State machine:
    - open -> in_progress (owner, at least one accepted application)
    - in_progress -> finished (owner)
    - open | in_progress -> cancelled (owner)
    - finished and cancelled are terminal
    """

    STATUS_OPEN = 'open'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_FINISHED = 'finished'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_OPEN, 'Open'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_FINISHED, 'Finished'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    TERMINAL_STATUSES = (STATUS_FINISHED, STATUS_CANCELLED)

    customer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='posted_jobs',
        help_text=_('Customer who posted the job')
    )

    title = models.CharField(
        _('title'),
        max_length=200,
        blank=False,
        null=False,
        help_text=_('Short title of the job')
    )

    description = models.TextField(
        _('description'),
        blank=False,
        null=False,
        help_text=_('Detailed description of the work')
    )

    budget = models.DecimalField(
        _('budget'),
        max_digits=10,
        decimal_places=2,
        blank=False,
        null=False,
        help_text=_('Budget offered for the job')
    )

    city = models.CharField(
        _('city'),
        max_length=100,
        blank=True,
        default='',
    )

    province = models.CharField(
        _('province'),
        max_length=100,
        blank=True,
        default='',
    )

    required_skills = models.CharField(
        _('required skills'),
        max_length=500,
        blank=True,
        default='',
        validators=[validate_skill_list],
        help_text=_('Comma separated list of required skills')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_OPEN,
        help_text=_('Current lifecycle status of the job')
    )

    applications_count = models.PositiveIntegerField(
        _('applications count'),
        default=0,
        help_text=_('Number of applications received')
    )

    started_at = models.DateTimeField(_('started at'), null=True, blank=True)
    finished_at = models.DateTimeField(_('finished at'), null=True, blank=True)
    cancelled_at = models.DateTimeField(_('cancelled at'), null=True, blank=True)

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the job was posted')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the job was last updated')
    )

    class Meta:
        verbose_name = _('job')
        verbose_name_plural = _('jobs')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='core_job_status_idx'),
            models.Index(fields=['city'], name='core_job_city_idx'),
            models.Index(fields=['budget'], name='core_job_budget_idx'),
        ]

    def __str__(self):
        """Return title as string representation."""
        return self.title

    def is_owned_by(self, user):
        """
        Check whether the user may act as owner of this job.

        Args:
            user: User instance

        Returns:
            bool: True for the posting customer and for admins
        """
        if user is None or not user.is_authenticated:
            return False
        return self.customer_id == user.id or user.is_admin()

    def is_open(self):
        return self.status == self.STATUS_OPEN

    def skill_list(self):
        return split_skills(self.required_skills)

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Customer is a customer (or admin) account
        - Title and description are not empty
        - Budget is greater than 0

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.customer_id and self.customer and not (
            self.customer.is_customer() or self.customer.is_admin()
        ):
            raise ValidationError({
                'customer': _('Only customers can post jobs.')
            })

        if not self.title or not self.title.strip():
            raise ValidationError({
                'title': _('Title cannot be empty.')
            })

        if not self.description or not self.description.strip():
            raise ValidationError({
                'description': _('Description cannot be empty.')
            })

        if self.budget is not None and self.budget <= 0:
            raise ValidationError({
                'budget': _('Budget must be greater than 0.')
            })

    def can_transition_to(self, new_status, accepted_count=None):
        """
        Validate if the job can transition to a new status.

        Valid transitions:
        - open -> in_progress (requires at least one accepted application)
        - open -> cancelled
        - in_progress -> finished
        - in_progress -> cancelled
        - finished, cancelled -> (terminal)

        Args:
            new_status: Target status
            accepted_count: Number of accepted applications; required when
                starting the job, counted from the database if omitted

        Returns:
            tuple: (is_valid: bool, error_message: str or None)
        """
        current_status = self.status

        if current_status in self.TERMINAL_STATUSES:
            return False, f'Cannot modify a {current_status} job.'

        if current_status == new_status:
            return False, f'Job is already {current_status}.'

        if current_status == self.STATUS_OPEN:
            if new_status == self.STATUS_IN_PROGRESS:
                if accepted_count is None:
                    accepted_count = self.applications.filter(
                        status=Application.STATUS_ACCEPTED
                    ).count()
                if accepted_count < 1:
                    return False, 'Cannot start a job without at least one accepted application.'
                return True, None
            if new_status == self.STATUS_CANCELLED:
                return True, None
            if new_status == self.STATUS_FINISHED:
                return False, 'Cannot transition from open to finished. Must start the job first.'

        if current_status == self.STATUS_IN_PROGRESS:
            if new_status in (self.STATUS_FINISHED, self.STATUS_CANCELLED):
                return True, None
            if new_status == self.STATUS_OPEN:
                return False, 'Cannot transition from in_progress back to open.'

        return False, f'Invalid status transition from {current_status} to {new_status}.'

    def save(self, *args, **kwargs):
        """Override save to ensure validation."""
        self.full_clean()
        super().save(*args, **kwargs)


# ============================================================================
# Application Models
# ============================================================================

class Application(models.Model):
    """
    A tasker's bid to perform a job.

    Fields:
    - job: Job applied to
    - tasker: Applicant
    - status: pending, accepted, rejected or withdrawn
    - proposed_budget: Optional counter-offer
    - accepted_at: Set when the owner hires the tasker
    - closed_at: Set when the application reaches a terminal status
    - created_at / updated_at: Row timestamps

    Free text (cover letter, termination or resignation reason) lives in
    ApplicationNote rows keyed by kind.
    """

    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_REJECTED = 'rejected'
    STATUS_WITHDRAWN = 'withdrawn'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_WITHDRAWN, 'Withdrawn'),
    ]

    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED)
    TERMINAL_STATUSES = (STATUS_REJECTED, STATUS_WITHDRAWN)

    job = models.ForeignKey(
        Job,
        on_delete=models.CASCADE,
        related_name='applications',
        help_text=_('Job being applied to')
    )

    tasker = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='applications',
        help_text=_('Tasker applying to the job')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING,
        help_text=_('Current status of the application')
    )

    proposed_budget = models.DecimalField(
        _('proposed budget'),
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_('Optional budget proposed by the tasker')
    )

    accepted_at = models.DateTimeField(_('accepted at'), null=True, blank=True)
    closed_at = models.DateTimeField(_('closed at'), null=True, blank=True)

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the application was submitted')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the application was last updated')
    )

    class Meta:
        verbose_name = _('application')
        verbose_name_plural = _('applications')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='core_app_status_idx'),
            models.Index(fields=['job', 'tasker'], name='core_app_job_tasker_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['job', 'tasker'],
                name='unique_active_application_per_tasker',
                condition=models.Q(status__in=['pending', 'accepted'])
            )
        ]

    def __str__(self):
        """Return meaningful string representation."""
        return f"Application by {self.tasker.email} for {self.job.title}"

    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    def _note_text(self, kind):
        # Iterate the related manager so prefetch_related('notes') is honoured.
        for note in self.notes.all():
            if note.kind == kind:
                return note.text
        return ''

    @property
    def cover_letter(self):
        return self._note_text(ApplicationNote.KIND_COVER_LETTER)

    @property
    def termination_reason(self):
        return self._note_text(ApplicationNote.KIND_TERMINATION_REASON)

    @property
    def resignation_reason(self):
        return self._note_text(ApplicationNote.KIND_RESIGNATION_REASON)

    def was_fired(self):
        """
        Check whether the application was terminated after being accepted.

        A plain rejection of a pending application carries no termination
        note, so it is not a firing.
        """
        return self.status == self.STATUS_REJECTED and bool(self.termination_reason)

    def has_resigned(self):
        """Check whether the tasker withdrew after being accepted."""
        return self.status == self.STATUS_WITHDRAWN and bool(self.resignation_reason)

    def worked_job(self):
        """
        Check whether the tasker was hired on the job at some point.

        Accepted taskers and taskers who resigned after being hired both
        count; pending withdrawals and rejections do not.
        """
        if self.status == self.STATUS_ACCEPTED:
            return True
        return self.status == self.STATUS_WITHDRAWN and self.accepted_at is not None

    def can_transition_to(self, new_status, job_status):
        """
        Validate if the application can transition to a new status.

        Valid transitions:
        - pending -> accepted (job open)
        - pending -> rejected (job open)
        - pending -> withdrawn (job open)
        - accepted -> rejected (job in progress, termination)
        - accepted -> withdrawn (job in progress, resignation)
        - rejected, withdrawn -> (terminal)

        Role checks are not performed here.

        Args:
            new_status: Target status
            job_status: Current status of the parent job

        Returns:
            tuple: (is_valid: bool, error_message: str or None)
        """
        current_status = self.status

        if current_status in self.TERMINAL_STATUSES:
            return False, f'Cannot modify a {current_status} application.'

        if current_status == new_status:
            return False, f'Application is already {current_status}.'

        if current_status == self.STATUS_PENDING:
            if new_status not in (self.STATUS_ACCEPTED, self.STATUS_REJECTED, self.STATUS_WITHDRAWN):
                return False, f'Invalid status transition from {current_status} to {new_status}.'
            if job_status != Job.STATUS_OPEN:
                return False, f'Pending applications can only change while the job is open. This job is {job_status}.'
            return True, None

        if current_status == self.STATUS_ACCEPTED:
            if new_status not in (self.STATUS_REJECTED, self.STATUS_WITHDRAWN):
                return False, f'Invalid status transition from {current_status} to {new_status}.'
            if job_status != Job.STATUS_IN_PROGRESS:
                return False, f'Accepted applications can only be terminated or resigned while the job is in progress. This job is {job_status}.'
            return True, None

        return False, f'Invalid status transition from {current_status} to {new_status}.'

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Tasker is a tasker account
        - Tasker does not apply to their own job
        - Proposed budget, if given, is greater than 0

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.tasker_id and self.tasker and not self.tasker.is_tasker():
            raise ValidationError({
                'tasker': _('Only taskers can apply to jobs.')
            })

        if self.tasker_id and self.job_id and self.job.customer_id == self.tasker_id:
            raise ValidationError({
                'tasker': _('You cannot apply to your own job.')
            })

        if self.proposed_budget is not None and self.proposed_budget <= 0:
            raise ValidationError({
                'proposed_budget': _('Proposed budget must be greater than 0.')
            })

    def save(self, *args, **kwargs):
        """
        Override save to validate fields.

        Unique constraints are left to the database so concurrent duplicate
        applications surface as IntegrityError.
        """
        self.full_clean(validate_constraints=False)
        super().save(*args, **kwargs)


class ApplicationNote(models.Model):
    """
    Free text attached to an application, tagged by what it means.

    - cover_letter: written by the tasker when applying
    - termination_reason: written by the owner when firing an accepted tasker
    - resignation_reason: written by the tasker when resigning
    """

    KIND_COVER_LETTER = 'cover_letter'
    KIND_TERMINATION_REASON = 'termination_reason'
    KIND_RESIGNATION_REASON = 'resignation_reason'

    KIND_CHOICES = [
        (KIND_COVER_LETTER, 'Cover letter'),
        (KIND_TERMINATION_REASON, 'Termination reason'),
        (KIND_RESIGNATION_REASON, 'Resignation reason'),
    ]

    application = models.ForeignKey(
        Application,
        on_delete=models.CASCADE,
        related_name='notes',
    )

    kind = models.CharField(
        _('kind'),
        max_length=30,
        choices=KIND_CHOICES,
    )

    text = models.TextField(_('text'))

    created_at = models.DateTimeField(_('created at'), auto_now_add=True)

    class Meta:
        verbose_name = _('application note')
        verbose_name_plural = _('application notes')
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['application', 'kind'],
                name='unique_note_kind_per_application'
            )
        ]

    def __str__(self):
        return f"{self.get_kind_display()} for application {self.application_id}"

    def clean(self):
        super().clean()
        if not self.text or not self.text.strip():
            raise ValidationError({
                'text': _('Note text cannot be empty.')
            })


class ReapplicationCooldown(models.Model):
    """
    Anchor of the re-application cooldown for a (job, tasker) pair.

    Written when a tasker withdraws a pending application and discarded
    once the cooldown period has elapsed.
    """

    job = models.ForeignKey(
        Job,
        on_delete=models.CASCADE,
        related_name='cooldowns',
    )

    tasker = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='cooldowns',
    )

    started_at = models.DateTimeField(
        _('started at'),
        help_text=_('When the tasker withdrew the pending application')
    )

    class Meta:
        verbose_name = _('reapplication cooldown')
        verbose_name_plural = _('reapplication cooldowns')
        constraints = [
            models.UniqueConstraint(
                fields=['job', 'tasker'],
                name='unique_cooldown_per_job_tasker'
            )
        ]
        indexes = [
            models.Index(fields=['started_at'], name='core_cooldown_started_idx'),
        ]

    def __str__(self):
        return f"Cooldown for tasker {self.tasker_id} on job {self.job_id}"

    def expires_at(self, period):
        return self.started_at + period

    def remaining(self, now, period):
        """
        Time left before the tasker may re-apply.

        Args:
            now: Current time
            period: Cooldown length as a timedelta

        Returns:
            timedelta: Remaining time, never negative
        """
        remaining = self.expires_at(period) - now
        if remaining < timedelta(0):
            return timedelta(0)
        return remaining


# ============================================================================
# Review Model
# ============================================================================

class Review(models.Model):
    """
    Post-completion rating between a customer and a tasker on a finished job.

    Fields:
    - job: Finished job the review belongs to
    - rater: User writing the review
    - ratee: User being rated
    - rater_role: 'customer' (rating a tasker) or 'tasker' (rating a customer)
    - rating: Integer rating from 1 to 5
    - comment: Optional written feedback
    - edited: True once the single permitted edit has been used
    - created_at / updated_at: Row timestamps
    """

    ROLE_CUSTOMER = 'customer'
    ROLE_TASKER = 'tasker'

    RATER_ROLE_CHOICES = [
        (ROLE_CUSTOMER, 'Customer'),
        (ROLE_TASKER, 'Tasker'),
    ]

    job = models.ForeignKey(
        Job,
        on_delete=models.CASCADE,
        related_name='reviews',
        help_text=_('Job being reviewed')
    )

    rater = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reviews_given',
        help_text=_('User writing the review')
    )

    ratee = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='reviews_received',
        help_text=_('User receiving the review')
    )

    rater_role = models.CharField(
        _('rater role'),
        max_length=10,
        choices=RATER_ROLE_CHOICES,
    )

    rating = models.PositiveSmallIntegerField(
        _('rating'),
        validators=[
            MinValueValidator(1, message=_('Rating must be at least 1.')),
            MaxValueValidator(5, message=_('Rating must be at most 5.'))
        ],
        help_text=_('Rating from 1 to 5 stars')
    )

    comment = models.TextField(
        _('comment'),
        blank=True,
        default='',
        help_text=_('Written feedback about the experience')
    )

    edited = models.BooleanField(
        _('edited'),
        default=False,
        help_text=_('Reviews can be edited once')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the review was created')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the review was last updated')
    )

    class Meta:
        verbose_name = _('review')
        verbose_name_plural = _('reviews')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['rating'], name='core_review_rating_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['job', 'rater', 'ratee'],
                name='unique_review_per_job_rater_ratee'
            )
        ]

    def __str__(self):
        """Return meaningful string representation."""
        return f"Review by {self.rater.email} for {self.ratee.email} - {self.rating}★"

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Rater and ratee are different users
        - Rating is between 1 and 5

        Eligibility against the job's applications is enforced by
        core.ratings before a review is created.

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.rater_id and self.ratee_id and self.rater_id == self.ratee_id:
            raise ValidationError({
                'ratee': _('Rater and ratee cannot be the same user.')
            })

        if self.rating is not None and not 1 <= self.rating <= 5:
            raise ValidationError({
                'rating': _('Rating must be between 1 and 5.')
            })

    def save(self, *args, **kwargs):
        """
        Override save to validate fields.

        Unique constraints are left to the database so that a concurrent
        duplicate review raises IntegrityError.
        """
        self.full_clean(validate_constraints=False)
        super().save(*args, **kwargs)
