import core.validators
import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('phone_number', models.CharField(blank=True, default='', help_text='Optional. Enter phone number in international format.', max_length=20, validators=[core.validators.validate_phone_number], verbose_name='phone number')),
                ('user_type', models.CharField(choices=[('customer', 'Customer'), ('tasker', 'Tasker'), ('admin', 'Administrator')], help_text='Required. Customers post jobs, taskers apply to them.', max_length=10, verbose_name='user type')),
                ('skills', models.CharField(blank=True, default='', help_text='Comma separated list of skills offered by a tasker.', max_length=500, validators=[core.validators.validate_skill_list], verbose_name='skills')),
                ('avg_rating_as_tasker', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Average rating received from customers.', max_digits=3, validators=[django.core.validators.MinValueValidator(Decimal('0.00'), message='Rating cannot be negative.'), django.core.validators.MaxValueValidator(Decimal('5.00'), message='Rating cannot exceed 5.00.')], verbose_name='average rating as tasker')),
                ('avg_rating_as_customer', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Average rating received from taskers.', max_digits=3, validators=[django.core.validators.MinValueValidator(Decimal('0.00'), message='Rating cannot be negative.'), django.core.validators.MaxValueValidator(Decimal('5.00'), message='Rating cannot exceed 5.00.')], verbose_name='average rating as customer')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the account was created.', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the account was last updated.', verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['user_type'], name='core_user_type_idx')],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Job',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(help_text='Short title of the job', max_length=200, verbose_name='title')),
                ('description', models.TextField(help_text='Detailed description of the work', verbose_name='description')),
                ('budget', models.DecimalField(decimal_places=2, help_text='Budget offered for the job', max_digits=10, verbose_name='budget')),
                ('city', models.CharField(blank=True, default='', max_length=100, verbose_name='city')),
                ('province', models.CharField(blank=True, default='', max_length=100, verbose_name='province')),
                ('required_skills', models.CharField(blank=True, default='', help_text='Comma separated list of required skills', max_length=500, validators=[core.validators.validate_skill_list], verbose_name='required skills')),
                ('status', models.CharField(choices=[('open', 'Open'), ('in_progress', 'In Progress'), ('finished', 'Finished'), ('cancelled', 'Cancelled')], default='open', help_text='Current lifecycle status of the job', max_length=20, verbose_name='status')),
                ('applications_count', models.PositiveIntegerField(default=0, help_text='Number of applications received', verbose_name='applications count')),
                ('started_at', models.DateTimeField(blank=True, null=True, verbose_name='started at')),
                ('finished_at', models.DateTimeField(blank=True, null=True, verbose_name='finished at')),
                ('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='cancelled at')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the job was posted', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the job was last updated', verbose_name='updated at')),
                ('customer', models.ForeignKey(help_text='Customer who posted the job', on_delete=django.db.models.deletion.CASCADE, related_name='posted_jobs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'job',
                'verbose_name_plural': 'jobs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='core_job_status_idx'),
                    models.Index(fields=['city'], name='core_job_city_idx'),
                    models.Index(fields=['budget'], name='core_job_budget_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Application',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('rejected', 'Rejected'), ('withdrawn', 'Withdrawn')], default='pending', help_text='Current status of the application', max_length=20, verbose_name='status')),
                ('proposed_budget', models.DecimalField(blank=True, decimal_places=2, help_text='Optional budget proposed by the tasker', max_digits=10, null=True, verbose_name='proposed budget')),
                ('accepted_at', models.DateTimeField(blank=True, null=True, verbose_name='accepted at')),
                ('closed_at', models.DateTimeField(blank=True, null=True, verbose_name='closed at')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the application was submitted', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the application was last updated', verbose_name='updated at')),
                ('job', models.ForeignKey(help_text='Job being applied to', on_delete=django.db.models.deletion.CASCADE, related_name='applications', to='core.job')),
                ('tasker', models.ForeignKey(help_text='Tasker applying to the job', on_delete=django.db.models.deletion.CASCADE, related_name='applications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'application',
                'verbose_name_plural': 'applications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='core_app_status_idx'),
                    models.Index(fields=['job', 'tasker'], name='core_app_job_tasker_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ['pending', 'accepted'])), fields=('job', 'tasker'), name='unique_active_application_per_tasker'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ApplicationNote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('cover_letter', 'Cover letter'), ('termination_reason', 'Termination reason'), ('resignation_reason', 'Resignation reason')], max_length=30, verbose_name='kind')),
                ('text', models.TextField(verbose_name='text')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('application', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notes', to='core.application')),
            ],
            options={
                'verbose_name': 'application note',
                'verbose_name_plural': 'application notes',
                'ordering': ['created_at'],
                'constraints': [
                    models.UniqueConstraint(fields=('application', 'kind'), name='unique_note_kind_per_application'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReapplicationCooldown',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('started_at', models.DateTimeField(help_text='When the tasker withdrew the pending application', verbose_name='started at')),
                ('job', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cooldowns', to='core.job')),
                ('tasker', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cooldowns', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'reapplication cooldown',
                'verbose_name_plural': 'reapplication cooldowns',
                'indexes': [
                    models.Index(fields=['started_at'], name='core_cooldown_started_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('job', 'tasker'), name='unique_cooldown_per_job_tasker'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Review',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rater_role', models.CharField(choices=[('customer', 'Customer'), ('tasker', 'Tasker')], max_length=10, verbose_name='rater role')),
                ('rating', models.PositiveSmallIntegerField(help_text='Rating from 1 to 5 stars', validators=[django.core.validators.MinValueValidator(1, message='Rating must be at least 1.'), django.core.validators.MaxValueValidator(5, message='Rating must be at most 5.')], verbose_name='rating')),
                ('comment', models.TextField(blank=True, default='', help_text='Written feedback about the experience', verbose_name='comment')),
                ('edited', models.BooleanField(default=False, help_text='Reviews can be edited once', verbose_name='edited')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the review was created', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the review was last updated', verbose_name='updated at')),
                ('job', models.ForeignKey(help_text='Job being reviewed', on_delete=django.db.models.deletion.CASCADE, related_name='reviews', to='core.job')),
                ('ratee', models.ForeignKey(help_text='User receiving the review', on_delete=django.db.models.deletion.CASCADE, related_name='reviews_received', to=settings.AUTH_USER_MODEL)),
                ('rater', models.ForeignKey(help_text='User writing the review', on_delete=django.db.models.deletion.CASCADE, related_name='reviews_given', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'review',
                'verbose_name_plural': 'reviews',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['rating'], name='core_review_rating_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('job', 'rater', 'ratee'), name='unique_review_per_job_rater_ratee'),
                ],
            },
        ),
    ]
