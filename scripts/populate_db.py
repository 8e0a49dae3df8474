import os
import sys
import django
import random
from decimal import Decimal
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'tasker_marketplace.settings')
django.setup()

from core import applications, jobs, ratings
from core.models import Job, User

fake = Faker()

SKILLS = [
    'plumbing', 'electrical', 'painting', 'carpentry', 'moving',
    'cleaning', 'gardening', 'assembly', 'tiling', 'roofing',
]

PROVINCES = ['Ontario', 'Quebec', 'British Columbia', 'Alberta', 'Manitoba']


def create_users(num_customers=10, num_taskers=15):
    print(f"Creating {num_customers} customers and {num_taskers} taskers...")

    customers = []
    taskers = []

    for _ in range(num_customers):
        email = fake.unique.email()
        user = User.objects.create_user(
            username=email.split('@')[0][:30],
            email=email,
            password='password123',
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            phone_number=fake.numerify('+1##########'),
            user_type='customer'
        )
        customers.append(user)

    for _ in range(num_taskers):
        email = fake.unique.email()
        user = User.objects.create_user(
            username=email.split('@')[0][:30],
            email=email,
            password='password123',
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            phone_number=fake.numerify('+1##########'),
            skills=', '.join(random.sample(SKILLS, random.randint(1, 4))),
            user_type='tasker'
        )
        taskers.append(user)

    print(f"Created {len(customers)} customers and {len(taskers)} taskers.")
    return customers, taskers


def create_jobs(customers):
    print("Creating jobs...")
    created = []

    for customer in customers:
        # Each customer posts 1-3 jobs
        for _ in range(random.randint(1, 3)):
            job = jobs.create_job(
                customer,
                title=fake.sentence(nb_words=5).rstrip('.'),
                description=fake.paragraph(),
                budget=Decimal(random.uniform(50.0, 2000.0)).quantize(Decimal('0.01')),
                city=fake.city(),
                province=random.choice(PROVINCES),
                required_skills=', '.join(random.sample(SKILLS, random.randint(1, 3))),
            )
            created.append(job)

    print(f"Created {len(created)} jobs.")
    return created


def create_applications(job_list, taskers):
    print("Creating applications...")
    count = 0

    for job in job_list:
        for tasker in random.sample(taskers, random.randint(0, 5)):
            applications.create_application(
                job.id,
                tasker,
                cover_letter=fake.paragraph(),
                proposed_budget=job.budget - Decimal(random.randint(0, 20)),
            )
            count += 1

    print(f"Created {count} applications.")


def advance_jobs(job_list):
    """
    Drive jobs through the lifecycle so every state is represented.

    Per job with applications: accept one or two, then leave it open,
    start it, finish it or cancel it.
    """
    print("Advancing jobs through the lifecycle...")

    for job in job_list:
        pending = list(job.applications.filter(status='pending'))
        if not pending:
            continue

        customer = job.customer
        hired = random.sample(pending, min(len(pending), random.randint(1, 2)))
        for application in hired:
            applications.accept_application(application.id, customer)

        for application in pending:
            if application not in hired and random.random() < 0.3:
                applications.withdraw_application(application.id, application.tasker)

        outcome = random.choice(['open', 'in_progress', 'finished', 'finished', 'cancelled'])
        if outcome == 'open':
            continue
        if outcome == 'cancelled':
            jobs.cancel_job(job.id, customer)
            continue

        jobs.start_job(job.id, customer)
        if outcome == 'finished':
            jobs.finish_job(job.id, customer)

    print("Lifecycle progression completed.")


def create_reviews():
    print("Creating reviews...")
    count = 0

    for job in Job.objects.filter(status=Job.STATUS_FINISHED):
        for entry in ratings.rating_status(job)['taskers']:
            # 70% chance of each side leaving a review
            if entry['customer_owes_review'] and random.random() < 0.7:
                ratings.submit_review(
                    job.id, job.customer, entry['tasker_id'],
                    random.randint(3, 5), fake.paragraph()
                )
                count += 1
            if random.random() < 0.7:
                tasker = User.objects.get(pk=entry['tasker_id'])
                ratings.submit_review(
                    job.id, tasker, job.customer_id,
                    random.randint(3, 5), fake.paragraph()
                )
                count += 1

    print(f"Created {count} reviews.")


def main():
    print("Starting database population...")

    customers, taskers = create_users(num_customers=10, num_taskers=20)

    job_list = create_jobs(customers)

    create_applications(job_list, taskers)

    advance_jobs(job_list)

    create_reviews()

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
