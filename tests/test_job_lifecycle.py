"""
Tests for the job state machine and the job lifecycle operations.
"""

from decimal import Decimal
from django.test import TestCase
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError

from core import applications, jobs
from core.exceptions import Forbidden, InvalidTransition, NotFound
from core.models import Application, Job


User = get_user_model()


class JobLifecycleTestBase(TestCase):
    """Shared fixtures: one customer, two taskers, one open job."""

    def setUp(self):
        self.customer = User.objects.create_user(
            username='customer',
            email='customer@test.com',
            password='testpass123',
            user_type='customer'
        )
        self.other_customer = User.objects.create_user(
            username='other',
            email='other@test.com',
            password='testpass123',
            user_type='customer'
        )
        self.tasker = User.objects.create_user(
            username='tasker',
            email='tasker@test.com',
            password='testpass123',
            user_type='tasker'
        )
        self.admin = User.objects.create_user(
            username='admin',
            email='admin@test.com',
            password='testpass123',
            user_type='admin'
        )
        self.job = jobs.create_job(
            self.customer,
            title='Fix kitchen sink',
            description='Leaking pipe under the sink.',
            budget=Decimal('150.00'),
            city='Toronto',
            province='Ontario',
            required_skills='plumbing',
        )

    def hire(self, tasker=None):
        application = applications.create_application(self.job.id, tasker or self.tasker)
        return applications.accept_application(application.id, self.customer)


class JobModelTests(JobLifecycleTestBase):
    """Model-level validation and transition table."""

    def test_new_job_is_open(self):
        self.assertEqual(self.job.status, Job.STATUS_OPEN)
        self.assertEqual(self.job.applications_count, 0)

    def test_budget_must_be_positive(self):
        with self.assertRaises(ValidationError):
            Job.objects.create(
                customer=self.customer,
                title='Free work',
                description='No budget',
                budget=Decimal('0.00'),
            )

    def test_tasker_cannot_own_job(self):
        with self.assertRaises(ValidationError):
            Job.objects.create(
                customer=self.tasker,
                title='Mine',
                description='Posted by a tasker',
                budget=Decimal('10.00'),
            )

    def test_transition_table(self):
        job = self.job
        self.assertEqual(job.can_transition_to(Job.STATUS_IN_PROGRESS, accepted_count=1), (True, None))
        self.assertFalse(job.can_transition_to(Job.STATUS_IN_PROGRESS, accepted_count=0)[0])
        self.assertTrue(job.can_transition_to(Job.STATUS_CANCELLED)[0])
        self.assertFalse(job.can_transition_to(Job.STATUS_FINISHED)[0])

        job.status = Job.STATUS_IN_PROGRESS
        self.assertTrue(job.can_transition_to(Job.STATUS_FINISHED)[0])
        self.assertTrue(job.can_transition_to(Job.STATUS_CANCELLED)[0])
        self.assertFalse(job.can_transition_to(Job.STATUS_OPEN)[0])

        for terminal in Job.TERMINAL_STATUSES:
            job.status = terminal
            for target in (Job.STATUS_OPEN, Job.STATUS_IN_PROGRESS, Job.STATUS_FINISHED, Job.STATUS_CANCELLED):
                self.assertFalse(job.can_transition_to(target, accepted_count=1)[0])

    def test_skill_list_is_normalized(self):
        self.job.required_skills = 'Plumbing,  tiling , plumbing'
        self.assertEqual(self.job.skill_list(), ['plumbing', 'tiling'])


class CreateAndEditJobTests(JobLifecycleTestBase):

    def test_tasker_cannot_post_job(self):
        with self.assertRaises(Forbidden):
            jobs.create_job(self.tasker, title='x', description='y', budget=Decimal('5.00'))

    def test_admin_can_post_job(self):
        job = jobs.create_job(self.admin, title='Admin job', description='d', budget=Decimal('5.00'))
        self.assertEqual(job.customer, self.admin)

    def test_owner_can_edit_open_job(self):
        job = jobs.edit_job(self.job.id, self.customer, title='Fix bathroom sink', budget=Decimal('200.00'))

        self.assertEqual(job.title, 'Fix bathroom sink')
        self.assertEqual(job.budget, Decimal('200.00'))

    def test_edit_ignores_lifecycle_fields(self):
        jobs.edit_job(self.job.id, self.customer, status=Job.STATUS_FINISHED, title='New title')

        self.job.refresh_from_db()
        self.assertEqual(self.job.status, Job.STATUS_OPEN)
        self.assertEqual(self.job.title, 'New title')

    def test_non_owner_cannot_edit(self):
        with self.assertRaises(Forbidden):
            jobs.edit_job(self.job.id, self.other_customer, title='Hijacked')

    def test_cannot_edit_started_job(self):
        self.hire()
        jobs.start_job(self.job.id, self.customer)

        with self.assertRaises(InvalidTransition):
            jobs.edit_job(self.job.id, self.customer, title='Too late')

    def test_delete_open_job(self):
        jobs.delete_job(self.job.id, self.customer)
        self.assertFalse(Job.objects.filter(pk=self.job.id).exists())

    def test_cannot_delete_job_with_accepted_application(self):
        self.hire()

        with self.assertRaises(InvalidTransition):
            jobs.delete_job(self.job.id, self.customer)
        self.assertTrue(Job.objects.filter(pk=self.job.id).exists())

    def test_unknown_job_raises_not_found(self):
        with self.assertRaises(NotFound):
            jobs.start_job(999999, self.customer)


class JobTransitionTests(JobLifecycleTestBase):

    def test_start_requires_an_accepted_application(self):
        applications.create_application(self.job.id, self.tasker)

        with self.assertRaises(InvalidTransition):
            jobs.start_job(self.job.id, self.customer)

        self.job.refresh_from_db()
        self.assertEqual(self.job.status, Job.STATUS_OPEN)

    def test_start_finish_happy_path_sets_timestamps(self):
        self.hire()

        job = jobs.start_job(self.job.id, self.customer)
        self.assertEqual(job.status, Job.STATUS_IN_PROGRESS)
        self.assertIsNotNone(job.started_at)

        job = jobs.finish_job(self.job.id, self.customer)
        self.assertEqual(job.status, Job.STATUS_FINISHED)
        self.assertIsNotNone(job.finished_at)

    def test_cannot_finish_open_job(self):
        with self.assertRaises(InvalidTransition):
            jobs.finish_job(self.job.id, self.customer)

    def test_cancel_from_open_and_in_progress(self):
        jobs.cancel_job(self.job.id, self.customer)
        self.job.refresh_from_db()
        self.assertEqual(self.job.status, Job.STATUS_CANCELLED)
        self.assertIsNotNone(self.job.cancelled_at)

        second = jobs.create_job(self.customer, title='Paint fence', description='d', budget=Decimal('80.00'))
        application = applications.create_application(second.id, self.tasker)
        applications.accept_application(application.id, self.customer)
        jobs.start_job(second.id, self.customer)

        job = jobs.cancel_job(second.id, self.customer)
        self.assertEqual(job.status, Job.STATUS_CANCELLED)

    def test_terminal_jobs_never_move(self):
        jobs.cancel_job(self.job.id, self.customer)

        for operation in (jobs.start_job, jobs.finish_job, jobs.cancel_job):
            with self.assertRaises(InvalidTransition):
                operation(self.job.id, self.customer)

    def test_non_owner_gets_forbidden_before_state_check(self):
        # The job cannot be started anyway; ownership is still reported first
        with self.assertRaises(Forbidden):
            jobs.start_job(self.job.id, self.other_customer)

    def test_tasker_cannot_transition_job(self):
        self.hire()
        with self.assertRaises(Forbidden):
            jobs.start_job(self.job.id, self.tasker)

    def test_admin_can_transition_any_job(self):
        self.hire()
        job = jobs.start_job(self.job.id, self.admin)
        self.assertEqual(job.status, Job.STATUS_IN_PROGRESS)

    def test_cancelled_job_freezes_applications(self):
        pending = applications.create_application(self.job.id, self.tasker)
        jobs.cancel_job(self.job.id, self.customer)

        with self.assertRaises(InvalidTransition):
            applications.accept_application(pending.id, self.customer)
        with self.assertRaises(InvalidTransition):
            applications.withdraw_application(pending.id, self.tasker)

        pending.refresh_from_db()
        self.assertEqual(pending.status, Application.STATUS_PENDING)
