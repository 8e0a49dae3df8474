from datetime import timedelta
from decimal import Decimal
from io import StringIO
from django.core.management import call_command
from django.db import connection
from django.test import TestCase
from django.test.utils import CaptureQueriesContext
from django.utils import timezone

from core import applications, cooldown, jobs, ratings
from core.models import Job, ReapplicationCooldown, User


class RecalculateRatingsCommandTests(TestCase):
    def setUp(self):
        self.customer = User.objects.create_user(
            username='customer', email='c1@test.com', password='password', user_type='customer'
        )
        self.tasker1 = User.objects.create_user(
            username='tasker1', email='t1@test.com', password='password', user_type='tasker'
        )
        self.tasker2 = User.objects.create_user(
            username='tasker2', email='t2@test.com', password='password', user_type='tasker'
        )

        self.job = jobs.create_job(
            self.customer, title='Job 1', description='Desc 1', budget=Decimal('100.00')
        )
        for tasker in (self.tasker1, self.tasker2):
            application = applications.create_application(self.job.id, tasker)
            applications.accept_application(application.id, self.customer)
        jobs.start_job(self.job.id, self.customer)
        jobs.finish_job(self.job.id, self.customer)

        ratings.submit_review(self.job.id, self.customer, self.tasker1.id, 5, 'Great!')
        ratings.submit_review(self.job.id, self.customer, self.tasker2.id, 2, 'Slow')
        ratings.submit_review(self.job.id, self.tasker1, self.customer.id, 4, 'Clear instructions')
        ratings.submit_review(self.job.id, self.tasker2, self.customer.id, 3, 'Okay')

        # Simulate drift between the cached values and the reviews
        User.objects.filter(pk=self.tasker1.pk).update(avg_rating_as_tasker=Decimal('1.00'))
        User.objects.filter(pk=self.customer.pk).update(avg_rating_as_customer=Decimal('0.00'))
        Job.objects.filter(pk=self.job.pk).update(applications_count=7)

    def test_recalculate_ratings(self):
        out = StringIO()
        call_command('recalculate_ratings', stdout=out)

        self.tasker1.refresh_from_db()
        self.tasker2.refresh_from_db()
        self.customer.refresh_from_db()
        self.job.refresh_from_db()

        self.assertEqual(self.tasker1.avg_rating_as_tasker, Decimal('5.00'))
        self.assertEqual(self.tasker2.avg_rating_as_tasker, Decimal('2.00'))
        self.assertEqual(self.customer.avg_rating_as_customer, Decimal('3.50'))
        self.assertEqual(self.customer.avg_rating_as_tasker, Decimal('0.00'))
        self.assertEqual(self.job.applications_count, 2)
        self.assertIn('Recalculation completed successfully.', out.getvalue())

    def test_dry_run(self):
        out = StringIO()
        call_command('recalculate_ratings', '--dry-run', stdout=out)

        self.tasker1.refresh_from_db()
        self.job.refresh_from_db()

        self.assertEqual(self.tasker1.avg_rating_as_tasker, Decimal('1.00'))
        self.assertEqual(self.job.applications_count, 7)
        output = out.getvalue()
        self.assertIn('[DRY-RUN] User', output)
        self.assertIn('[DRY-RUN] Job', output)
        self.assertIn('Dry run completed. No changes saved.', output)

    def test_jobs_only(self):
        call_command('recalculate_ratings', '--jobs-only', stdout=StringIO())

        self.tasker1.refresh_from_db()
        self.job.refresh_from_db()

        self.assertEqual(self.job.applications_count, 2)
        self.assertEqual(self.tasker1.avg_rating_as_tasker, Decimal('1.00'))

    def test_users_only_with_small_batches(self):
        call_command('recalculate_ratings', '--users-only', '--batch-size', '1', stdout=StringIO())

        self.tasker1.refresh_from_db()
        self.customer.refresh_from_db()
        self.job.refresh_from_db()

        self.assertEqual(self.tasker1.avg_rating_as_tasker, Decimal('5.00'))
        self.assertEqual(self.customer.avg_rating_as_customer, Decimal('3.50'))
        self.assertEqual(self.job.applications_count, 7)

    def test_user_averages_read_in_one_query(self):
        for i in range(5):
            User.objects.create_user(
                username=f'idle{i}', email=f'idle{i}@test.com', password='password', user_type='tasker'
            )

        with CaptureQueriesContext(connection) as queries:
            call_command('recalculate_ratings', '--users-only', stdout=StringIO())

        selects = [q['sql'] for q in queries.captured_queries if q['sql'].lstrip().upper().startswith('SELECT')]
        self.assertEqual(len(selects), 1)

        self.tasker2.refresh_from_db()
        self.assertEqual(self.tasker2.avg_rating_as_tasker, Decimal('2.00'))
        self.assertEqual(User.objects.get(username='idle0').avg_rating_as_tasker, Decimal('0.00'))


class PurgeCooldownsCommandTests(TestCase):
    def setUp(self):
        customer = User.objects.create_user(
            username='customer', email='c1@test.com', password='password', user_type='customer'
        )
        self.tasker1 = User.objects.create_user(
            username='tasker1', email='t1@test.com', password='password', user_type='tasker'
        )
        self.tasker2 = User.objects.create_user(
            username='tasker2', email='t2@test.com', password='password', user_type='tasker'
        )
        job = jobs.create_job(customer, title='Job 1', description='Desc 1', budget=Decimal('100.00'))

        now = timezone.now()
        cooldown.start_cooldown(job, self.tasker1, now=now - timedelta(hours=2))
        cooldown.start_cooldown(job, self.tasker2, now=now - timedelta(minutes=10))

    def test_purge(self):
        out = StringIO()
        call_command('purge_cooldowns', stdout=out)

        self.assertIn('Deleted 1 expired cooldowns.', out.getvalue())
        self.assertEqual(
            list(ReapplicationCooldown.objects.values_list('tasker_id', flat=True)),
            [self.tasker2.id]
        )

    def test_dry_run(self):
        out = StringIO()
        call_command('purge_cooldowns', '--dry-run', stdout=out)

        self.assertIn('[DRY-RUN] 1 expired cooldowns would be deleted.', out.getvalue())
        self.assertEqual(ReapplicationCooldown.objects.count(), 2)
