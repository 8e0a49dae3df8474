# Recalculate Ratings Management Command
from django.core.management.base import BaseCommand
from django.db.models import Avg, Count, Q

from core.models import Job, Review, User
from core.signals import round_average


class Command(BaseCommand):
    help = 'Recalculates cached user ratings and job application counts.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run the command without saving changes to the database.',
        )
        parser.add_argument(
            '--jobs-only',
            action='store_true',
            help='Recalculate only job application counts.',
        )
        parser.add_argument(
            '--users-only',
            action='store_true',
            help='Recalculate only user ratings.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Batch size for bulk processing.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        if not options['users_only']:
            self.recalculate_jobs(dry_run, batch_size)

        if not options['jobs_only']:
            self.recalculate_users(dry_run, batch_size)

        if dry_run:
            self.stdout.write(self.style.SUCCESS('Dry run completed. No changes saved.'))
        else:
            self.stdout.write(self.style.SUCCESS('Recalculation completed successfully.'))

    def recalculate_jobs(self, dry_run, batch_size):
        self.stdout.write('Recalculating job application counts...')
        jobs = Job.objects.annotate(actual_count=Count('applications')).iterator(chunk_size=batch_size)
        updates = []
        count = 0

        for job in jobs:
            if job.applications_count != job.actual_count:
                if dry_run:
                    self.stdout.write(
                        f'  [DRY-RUN] Job {job.id} ({job.title}): '
                        f'Applications {job.applications_count} -> {job.actual_count}'
                    )
                job.applications_count = job.actual_count
                updates.append(job)

            if len(updates) >= batch_size:
                if not dry_run:
                    Job.objects.bulk_update(updates, ['applications_count'])
                updates = []

            count += 1
            if count % 100 == 0:
                self.stdout.write(f'Processed {count} jobs...')

        if updates and not dry_run:
            Job.objects.bulk_update(updates, ['applications_count'])

        self.stdout.write(f'Processed {count} jobs total.')

    def recalculate_users(self, dry_run, batch_size):
        self.stdout.write('Recalculating user ratings...')
        # Reviews written by customers rate the ratee as a tasker, and the
        # other way round
        users = User.objects.annotate(
            tasker_avg=Avg(
                'reviews_received__rating',
                filter=Q(reviews_received__rater_role=Review.ROLE_CUSTOMER)
            ),
            customer_avg=Avg(
                'reviews_received__rating',
                filter=Q(reviews_received__rater_role=Review.ROLE_TASKER)
            ),
        ).order_by('pk').iterator(chunk_size=batch_size)
        updates = []
        count = 0

        for user in users:
            updated = False

            new_tasker_avg = round_average(user.tasker_avg)
            if user.avg_rating_as_tasker != new_tasker_avg:
                if dry_run:
                    self.stdout.write(
                        f'  [DRY-RUN] User {user.id} (Tasker): '
                        f'Rating {user.avg_rating_as_tasker} -> {new_tasker_avg}'
                    )
                user.avg_rating_as_tasker = new_tasker_avg
                updated = True

            new_customer_avg = round_average(user.customer_avg)
            if user.avg_rating_as_customer != new_customer_avg:
                if dry_run:
                    self.stdout.write(
                        f'  [DRY-RUN] User {user.id} (Customer): '
                        f'Rating {user.avg_rating_as_customer} -> {new_customer_avg}'
                    )
                user.avg_rating_as_customer = new_customer_avg
                updated = True

            if updated:
                updates.append(user)

            if len(updates) >= batch_size:
                if not dry_run:
                    User.objects.bulk_update(updates, ['avg_rating_as_tasker', 'avg_rating_as_customer'])
                updates = []

            count += 1
            if count % 100 == 0:
                self.stdout.write(f'Processed {count} users...')

        if updates and not dry_run:
            User.objects.bulk_update(updates, ['avg_rating_as_tasker', 'avg_rating_as_customer'])

        self.stdout.write(f'Processed {count} users total.')
