"""
API views for the Tasker Marketplace.

Views parse and validate input, then delegate to the lifecycle operations in
core.jobs, core.applications and core.ratings. Business-rule violations are
raised as core.exceptions errors and rendered by the project exception
handler.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.contrib.auth import get_user_model
from django.db.models import Avg, Case, Count, IntegerField, Max, Min, Q, When
from rest_framework import serializers, status
from rest_framework.generics import ListAPIView
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from . import applications as application_ops
from . import jobs as job_ops
from . import ratings
from .exceptions import Forbidden, NotFound
from .matching import annotate_applications, annotate_jobs, attach_scores, get_matching_client
from .models import Application, Job, Review
from .permissions import IsCustomer, IsJobOwnerOrAdmin, IsTasker
from .serializers import (
    ApplicationCreateSerializer,
    ApplicationSerializer,
    ApplicationTransitionSerializer,
    EmailTokenObtainPairSerializer,
    JobSerializer,
    JobWriteSerializer,
    ReviewCreateSerializer,
    ReviewSerializer,
    ReviewUpdateSerializer,
    UserReviewSerializer,
)

User = get_user_model()
logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Get client IP address from request.

    Args:
        request: HTTP request object

    Returns:
        str: Client IP address
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def _get_job(job_id):
    try:
        return Job.objects.select_related('customer').get(pk=job_id)
    except Job.DoesNotExist:
        raise NotFound(f'Job with ID {job_id} does not exist.')


def _parse_decimal(params, name):
    value = params.get(name)
    if value in (None, ''):
        return None
    try:
        parsed = Decimal(value)
    except (ValueError, InvalidOperation):
        raise serializers.ValidationError({name: [f'Invalid value for "{name}". Must be a valid number.']})
    if parsed < 0:
        raise serializers.ValidationError({name: [f'"{name}" cannot be negative.']})
    return parsed


class EmailTokenObtainPairView(TokenObtainPairView):
    """
    Custom view to use email-based authentication instead of username.
    """
    serializer_class = EmailTokenObtainPairSerializer
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'token'


# ============================================================================
# Job Views
# ============================================================================

class JobListCreateView(ListAPIView):
    """
    API endpoint for browsing and posting jobs.

    GET /api/jobs/

    Query Parameters:
    - status: open, in_progress, finished or cancelled
    - city, province: Case-insensitive partial match
    - min_budget, max_budget: Budget range (decimal)
    - skills: Comma separated; a job matches if it requires any of them
    - page: Page number

    POST /api/jobs/
        Customers only. Body: title, description, budget, city, province,
        required_skills.

    For taskers each job also carries ``match_percentage`` (null when the
    matching service has no score or is unavailable).

    Returns:
    - 200 OK: Paginated list of jobs
    - 201 Created: The posted job
    - 400 Bad Request: Invalid filters or body
    - 403 Forbidden: Non-customer posting a job
    """

    serializer_class = JobSerializer

    def get_queryset(self):
        params = self.request.query_params
        queryset = Job.objects.select_related('customer').all()

        job_status = params.get('status')
        if job_status:
            valid_statuses = [choice[0] for choice in Job.STATUS_CHOICES]
            if job_status not in valid_statuses:
                raise serializers.ValidationError({
                    'status': [f'Status must be one of: {", ".join(valid_statuses)}.']
                })
            queryset = queryset.filter(status=job_status)

        city = params.get('city')
        if city:
            queryset = queryset.filter(city__icontains=city.strip())

        province = params.get('province')
        if province:
            queryset = queryset.filter(province__icontains=province.strip())

        min_budget = _parse_decimal(params, 'min_budget')
        max_budget = _parse_decimal(params, 'max_budget')
        if min_budget is not None and max_budget is not None and min_budget > max_budget:
            raise serializers.ValidationError({
                'min_budget': ['Minimum budget cannot be greater than maximum budget.']
            })
        if min_budget is not None:
            queryset = queryset.filter(budget__gte=min_budget)
        if max_budget is not None:
            queryset = queryset.filter(budget__lte=max_budget)

        skills = [s.strip() for s in params.get('skills', '').split(',') if s.strip()]
        if skills:
            skill_filter = Q()
            for skill in skills:
                skill_filter |= Q(required_skills__icontains=skill)
            queryset = queryset.filter(skill_filter)

        return queryset.order_by('-created_at')

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        jobs = page if page is not None else queryset

        # Taskers see their score on each job; page order is kept
        if request.user.is_tasker():
            jobs = annotate_jobs(jobs, request.user, order=False)

        serializer = self.get_serializer(jobs, many=True)
        if page is not None:
            return self.get_paginated_response(serializer.data)
        return Response(serializer.data)

    def post(self, request, *args, **kwargs):
        serializer = JobWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        job = job_ops.create_job(request.user, **serializer.validated_data)
        return Response(JobSerializer(job).data, status=status.HTTP_201_CREATED)


class MyJobsView(ListAPIView):
    """
    GET /api/jobs/mine/

    Jobs posted by the authenticated customer, newest first. Accepts the
    same ``status`` filter as the job list.
    """

    serializer_class = JobSerializer
    permission_classes = [IsAuthenticated, IsCustomer]

    def get_queryset(self):
        queryset = Job.objects.filter(customer=self.request.user).select_related('customer')
        job_status = self.request.query_params.get('status')
        if job_status:
            queryset = queryset.filter(status=job_status)
        return queryset.order_by('-created_at')


class JobDetailView(APIView):
    """
    API endpoint for a single job.

    GET    /api/jobs/<job_id>/  Any authenticated user
    PATCH  /api/jobs/<job_id>/  Owner, open jobs only
    DELETE /api/jobs/<job_id>/  Owner, open jobs without accepted applications
    """

    def get(self, request, job_id, *args, **kwargs):
        job = _get_job(job_id)
        return Response(JobSerializer(job).data, status=status.HTTP_200_OK)

    def patch(self, request, job_id, *args, **kwargs):
        serializer = JobWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        job = job_ops.edit_job(job_id, request.user, **serializer.validated_data)
        return Response(JobSerializer(job).data, status=status.HTTP_200_OK)

    def delete(self, request, job_id, *args, **kwargs):
        job_ops.delete_job(job_id, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class JobTransitionView(APIView):
    """
    API endpoint for job lifecycle transitions.

    POST /api/jobs/<job_id>/start/
    POST /api/jobs/<job_id>/finish/
    POST /api/jobs/<job_id>/cancel/

    The transition is chosen by the URL (``transition`` init kwarg).

    Returns:
    - 200 OK: The updated job
    - 403 Forbidden: Caller is not the owner
    - 404 Not Found: Unknown job
    - 409 Conflict: Transition not allowed from the current status
    """

    transition = None

    operations = {
        'start': job_ops.start_job,
        'finish': job_ops.finish_job,
        'cancel': job_ops.cancel_job,
    }

    def post(self, request, job_id, *args, **kwargs):
        operation = self.operations[self.transition]
        try:
            job = operation(job_id, request.user)
        except Forbidden:
            logger.warning(
                f"Forbidden job {self.transition} from IP {get_client_ip(request)}. "
                f"Job ID: {job_id}, User ID: {request.user.id}"
            )
            raise
        return Response(JobSerializer(job).data, status=status.HTTP_200_OK)


class JobApplicationsView(APIView):
    """
    GET /api/jobs/<job_id>/applications/

    Owner (or admin) view of a job's applications, grouped into pending,
    active, terminated and withdrawn. When the matching service is
    configured each application carries ``match_percentage`` and groups are
    ordered best match first.
    """

    permission_classes = [IsAuthenticated, IsJobOwnerOrAdmin]

    def get(self, request, job_id, *args, **kwargs):
        job = _get_job(job_id)
        self.check_object_permissions(request, job)

        applications = (
            job.applications.all()
            .select_related('tasker', 'job')
            .prefetch_related('notes')
            .order_by('created_at')
        )
        applications = annotate_applications(job, applications)
        groups = application_ops.partition_applications(job, applications)

        data = {
            key: ApplicationSerializer(items, many=True).data
            for key, items in groups.items()
        }
        data['job_id'] = job.id
        data['job_status'] = job.status
        return Response(data, status=status.HTTP_200_OK)


class JobMatchesView(APIView):
    """
    GET /api/jobs/<job_id>/matches/

    Ranked taskers for a job from the matching service.

    Returns:
    - 200 OK: {"job_id": ..., "matches": [{tasker_id, match_percentage, ...}]}
    - 403 Forbidden: Caller is not the owner
    - 503 Service Unavailable: Matching service disabled or failing
    """

    permission_classes = [IsAuthenticated, IsJobOwnerOrAdmin]

    def get(self, request, job_id, *args, **kwargs):
        job = _get_job(job_id)
        self.check_object_permissions(request, job)

        matches = get_matching_client().job_matches(job.id)
        return Response({'job_id': job.id, 'matches': matches}, status=status.HTTP_200_OK)


class TaskerMatchPercentageView(APIView):
    """
    GET /api/jobs/<job_id>/matches/<tasker_id>/

    Match percentage of one tasker for one job. Visible to the job owner,
    admins and the tasker themselves.

    Returns:
    - 200 OK: {"job_id": ..., "tasker_id": ..., "match_percentage": float or null}
    - 403 Forbidden: Caller is neither the owner nor that tasker
    - 404 Not Found: Unknown job or tasker
    - 503 Service Unavailable: Matching service disabled or failing
    """

    def get(self, request, job_id, tasker_id, *args, **kwargs):
        job = _get_job(job_id)
        if request.user.id != tasker_id and not job.is_owned_by(request.user):
            raise Forbidden('Only the job owner or the tasker can view this match.')
        if not User.objects.filter(pk=tasker_id, user_type='tasker').exists():
            raise NotFound(f'Tasker with ID {tasker_id} does not exist.')

        percentage = get_matching_client().match_percentage(job.id, tasker_id)
        return Response(
            {'job_id': job.id, 'tasker_id': tasker_id, 'match_percentage': percentage},
            status=status.HTTP_200_OK
        )


class TaskerJobMatchesView(APIView):
    """
    GET /api/jobs/matches/for-tasker/

    Open jobs ranked for the authenticated tasker, best match first. Jobs
    the service does not score follow, newest first.

    Returns:
    - 200 OK: {"tasker_id": ..., "jobs": [job with match_percentage, ...]}
    - 403 Forbidden: Caller is not a tasker
    - 503 Service Unavailable: Matching service disabled or failing
    """

    permission_classes = [IsAuthenticated, IsTasker]

    def get(self, request, *args, **kwargs):
        client = get_matching_client()
        scores = {m['job_id']: m['match_percentage'] for m in client.tasker_matches(request.user.id)}

        open_jobs = (
            Job.objects.filter(status=Job.STATUS_OPEN)
            .select_related('customer')
            .order_by('-created_at')
        )
        ranked = attach_scores(open_jobs, scores, lambda j: j.id)

        return Response(
            {'tasker_id': request.user.id, 'jobs': JobSerializer(ranked, many=True).data},
            status=status.HTTP_200_OK
        )


class JobCooldownView(APIView):
    """
    GET /api/jobs/<job_id>/cooldown/

    Whether the authenticated tasker may apply to the job now, and how many
    seconds of reapplication cooldown remain.
    """

    permission_classes = [IsAuthenticated, IsTasker]

    def get(self, request, job_id, *args, **kwargs):
        job = _get_job(job_id)

        data = application_ops.reapplication_status(job, request.user)
        return Response(data, status=status.HTTP_200_OK)


class JobRatingsView(APIView):
    """
    GET /api/jobs/<job_id>/ratings/

    Rating obligation status of a job. Visible to the owner, admins and
    taskers who applied to the job.
    """

    def get(self, request, job_id, *args, **kwargs):
        job = _get_job(job_id)
        applied = job.applications.filter(tasker=request.user).exists()
        if not (job.is_owned_by(request.user) or applied):
            raise Forbidden('Only participants of this job can view its rating status.')

        return Response(ratings.rating_status(job), status=status.HTTP_200_OK)


# ============================================================================
# Application Views
# ============================================================================

def _applications_visible_to(user):
    queryset = Application.objects.select_related('job', 'tasker').prefetch_related('notes')
    if user.is_admin():
        return queryset
    if user.is_customer():
        return queryset.filter(job__customer=user)
    return queryset.filter(tasker=user)


class ApplicationListCreateView(ListAPIView):
    """
    API endpoint for listing and submitting applications.

    GET /api/applications/

    Results are scoped to the caller: taskers see their own applications,
    customers see applications to their jobs, admins see everything.

    Query Parameters:
    - job: Job ID
    - tasker: Tasker ID
    - status: pending, accepted, rejected or withdrawn

    POST /api/applications/
        Taskers only. Body: job_id, cover_letter, proposed_budget.

    Returns:
    - 201 Created: The pending application
    - 403 Forbidden: Caller is not a tasker or owns the job
    - 404 Not Found: Unknown job
    - 409 Conflict: Job not open, active application exists, or cooldown
      active (with seconds_remaining)
    """

    serializer_class = ApplicationSerializer

    def get_queryset(self):
        params = self.request.query_params
        queryset = _applications_visible_to(self.request.user)

        for param, lookup in (('job', 'job_id'), ('tasker', 'tasker_id')):
            value = params.get(param)
            if value:
                try:
                    queryset = queryset.filter(**{lookup: int(value)})
                except ValueError:
                    raise serializers.ValidationError({param: [f'"{param}" must be an integer.']})

        application_status = params.get('status')
        if application_status:
            queryset = queryset.filter(status=application_status)

        return queryset.order_by('-created_at')

    def post(self, request, *args, **kwargs):
        serializer = ApplicationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        application = application_ops.create_application(
            serializer.validated_data['job_id'],
            request.user,
            cover_letter=serializer.validated_data['cover_letter'],
            proposed_budget=serializer.validated_data['proposed_budget'],
        )
        return Response(ApplicationSerializer(application).data, status=status.HTTP_201_CREATED)


class MyApplicationsView(ListAPIView):
    """
    GET /api/applications/mine/

    The authenticated tasker's applications, newest first.
    """

    serializer_class = ApplicationSerializer
    permission_classes = [IsAuthenticated, IsTasker]

    def get_queryset(self):
        queryset = (
            Application.objects.filter(tasker=self.request.user)
            .select_related('job', 'tasker')
            .prefetch_related('notes')
        )
        application_status = self.request.query_params.get('status')
        if application_status:
            queryset = queryset.filter(status=application_status)
        return queryset.order_by('-created_at')


class ApplicationDetailView(APIView):
    """
    API endpoint for a single application.

    GET   /api/applications/<application_id>/
        Visible to the applicant, the job owner and admins.

    PATCH /api/applications/<application_id>/
        Request body: {"status": "accepted|rejected|withdrawn", "reason": "..."}

        - Owner: pending -> accepted | rejected while the job is open;
          accepted -> rejected (termination, reason required) while the job
          is in progress
        - Tasker: pending -> withdrawn while the job is open (starts the
          reapplication cooldown); accepted -> withdrawn (resignation,
          reason required) while the job is in progress

    Returns:
    - 200 OK: Updated application
    - 400 Bad Request: Invalid body or missing reason
    - 403 Forbidden: Caller may not perform this transition
    - 404 Not Found: Unknown application
    - 409 Conflict: Transition not allowed in the current state
    """

    def get(self, request, application_id, *args, **kwargs):
        try:
            application = (
                Application.objects.select_related('job', 'tasker')
                .prefetch_related('notes')
                .get(pk=application_id)
            )
        except Application.DoesNotExist:
            raise NotFound(f'Application with ID {application_id} does not exist.')

        if application.tasker_id != request.user.id and not application.job.is_owned_by(request.user):
            raise Forbidden('You do not have permission to view this application.')

        return Response(ApplicationSerializer(application).data, status=status.HTTP_200_OK)

    def patch(self, request, application_id, *args, **kwargs):
        serializer = ApplicationTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            application = application_ops.transition_application(
                application_id,
                request.user,
                serializer.validated_data['status'],
                reason=serializer.validated_data['reason'],
            )
        except Forbidden:
            logger.warning(
                f"Forbidden application update from IP {get_client_ip(request)}. "
                f"Application ID: {application_id}, User ID: {request.user.id}"
            )
            raise

        application = (
            Application.objects.select_related('job', 'tasker')
            .prefetch_related('notes')
            .get(pk=application.pk)
        )
        return Response(ApplicationSerializer(application).data, status=status.HTTP_200_OK)


# ============================================================================
# Review Views
# ============================================================================

class ReviewCreateView(APIView):
    """
    POST /api/reviews/

    Request body:
    {
        "job_id": 1,
        "ratee_id": 2,
        "rating": 5,
        "comment": "Great work!"
    }

    Returns:
    - 201 Created: The review
    - 400 Bad Request: Invalid body
    - 403 Forbidden: No rating obligation between caller and ratee
    - 404 Not Found: Unknown job or ratee
    - 409 Conflict: Already reviewed
    """

    def post(self, request, *args, **kwargs):
        serializer = ReviewCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        review = ratings.submit_review(
            serializer.validated_data['job_id'],
            request.user,
            serializer.validated_data['ratee_id'],
            serializer.validated_data['rating'],
            serializer.validated_data['comment'],
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)


class ReviewDetailView(APIView):
    """
    GET   /api/reviews/<review_id>/  Any authenticated user
    PATCH /api/reviews/<review_id>/  Rater only, once
    """

    def get(self, request, review_id, *args, **kwargs):
        try:
            review = Review.objects.select_related('job', 'rater', 'ratee').get(pk=review_id)
        except Review.DoesNotExist:
            raise NotFound(f'Review with ID {review_id} does not exist.')
        return Response(ReviewSerializer(review).data, status=status.HTTP_200_OK)

    def patch(self, request, review_id, *args, **kwargs):
        serializer = ReviewUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        review = ratings.edit_review(
            review_id,
            request.user,
            rating=serializer.validated_data.get('rating'),
            comment=serializer.validated_data.get('comment'),
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_200_OK)


class PendingReviewsView(APIView):
    """
    GET /api/reviews/pending/

    Reviews the authenticated user still owes on finished jobs.
    """

    def get(self, request, *args, **kwargs):
        pending = ratings.pending_ratings_for(request.user)
        return Response({'count': len(pending), 'results': pending}, status=status.HTTP_200_OK)


def _calculate_rating_distribution(reviews_queryset):
    """
    Calculate rating distribution with counts and percentages.

    Args:
        reviews_queryset: QuerySet of Review objects

    Returns:
        dict: Rating distribution with counts and percentages
    """
    distribution_data = reviews_queryset.aggregate(
        five_star=Count(Case(When(rating=5, then=1), output_field=IntegerField())),
        four_star=Count(Case(When(rating=4, then=1), output_field=IntegerField())),
        three_star=Count(Case(When(rating=3, then=1), output_field=IntegerField())),
        two_star=Count(Case(When(rating=2, then=1), output_field=IntegerField())),
        one_star=Count(Case(When(rating=1, then=1), output_field=IntegerField())),
        total=Count('id')
    )

    total = distribution_data['total']
    names = ['one_star', 'two_star', 'three_star', 'four_star', 'five_star']

    distribution = {}
    for stars, name in enumerate(names, start=1):
        distribution[f'{stars}_star'] = distribution_data[name]
    for stars, name in enumerate(names, start=1):
        distribution[f'{stars}_star_percentage'] = (
            round((distribution_data[name] / total) * 100, 2) if total > 0 else 0.0
        )
    return distribution


def _role_statistics(reviews_queryset):
    stats = reviews_queryset.aggregate(average_rating=Avg('rating'), total_reviews=Count('id'))
    return {
        'average_rating': round(stats['average_rating'], 2) if stats['average_rating'] else 0,
        'total_reviews': stats['total_reviews'],
        'rating_distribution': _calculate_rating_distribution(reviews_queryset),
    }


class UserReviewsView(ListAPIView):
    """
    API endpoint for retrieving the reviews a user received.

    GET /api/users/<user_id>/reviews/

    Query Parameters:
    - role (optional): 'tasker' (reviews from customers) or 'customer'
      (reviews from taskers)
    - min_rating (optional): Filter by minimum rating (1-5)
    - sort (optional): 'date_desc' [default], 'rating_desc', 'rating_asc'
    - page (optional): Page number for pagination

    The paginated response carries a ``statistics`` block with
    ``as_tasker`` and ``as_customer`` averages and distributions.
    """

    class UserReviewsPagination(PageNumberPagination):
        page_size = 10
        page_size_query_param = 'page_size'
        max_page_size = 100

    pagination_class = UserReviewsPagination
    serializer_class = UserReviewSerializer

    def get_queryset(self):
        user_id = self.kwargs.get('user_id')
        params = self.request.query_params

        queryset = Review.objects.filter(ratee_id=user_id).select_related('rater', 'job')

        role_filter = params.get('role')
        if role_filter == 'tasker':
            queryset = queryset.filter(rater_role=Review.ROLE_CUSTOMER)
        elif role_filter == 'customer':
            queryset = queryset.filter(rater_role=Review.ROLE_TASKER)
        elif role_filter:
            raise serializers.ValidationError({'role': ['Role must be "tasker" or "customer".']})

        min_rating = params.get('min_rating')
        if min_rating:
            try:
                min_rating_int = int(min_rating)
            except ValueError:
                raise serializers.ValidationError({'min_rating': ['"min_rating" must be an integer.']})
            if 1 <= min_rating_int <= 5:
                queryset = queryset.filter(rating__gte=min_rating_int)

        sort_param = params.get('sort', 'date_desc')
        if sort_param == 'rating_desc':
            queryset = queryset.order_by('-rating', '-created_at')
        elif sort_param == 'rating_asc':
            queryset = queryset.order_by('rating', '-created_at')
        else:
            queryset = queryset.order_by('-created_at')

        return queryset

    def list(self, request, *args, **kwargs):
        user_id = self.kwargs.get('user_id')
        if not User.objects.filter(pk=user_id).exists():
            raise NotFound(f'User with ID {user_id} does not exist.')

        received = Review.objects.filter(ratee_id=user_id)
        statistics = {
            'as_tasker': _role_statistics(received.filter(rater_role=Review.ROLE_CUSTOMER)),
            'as_customer': _role_statistics(received.filter(rater_role=Review.ROLE_TASKER)),
        }

        response = super().list(request, *args, **kwargs)
        response.data['statistics'] = statistics
        return response


class UserRatingSummaryView(APIView):
    """
    GET /api/users/<user_id>/rating-summary/

    Success response (200):
    {
        "user_id": 7,
        "overall_average_rating": 4.5,
        "total_reviews": 10,
        "avg_rating_as_tasker": "4.60",
        "avg_rating_as_customer": "4.00",
        "as_tasker": {"average_rating": 4.6, "total_reviews": 8, "rating_distribution": {...}},
        "as_customer": {"average_rating": 4.0, "total_reviews": 2, "rating_distribution": {...}},
        "rating_distribution": {...},
        "most_recent_review_date": "...",
        "first_review_date": "..."
    }
    """

    def get(self, request, user_id, *args, **kwargs):
        try:
            user = User.objects.get(pk=user_id)
        except User.DoesNotExist:
            raise NotFound(f'User with ID {user_id} does not exist.')

        all_reviews = Review.objects.filter(ratee=user)
        overall_stats = all_reviews.aggregate(
            average_rating=Avg('rating'),
            total_reviews=Count('id'),
            first_review=Min('created_at'),
            most_recent_review=Max('created_at')
        )

        response_data = {
            'user_id': user.id,
            'overall_average_rating': (
                round(overall_stats['average_rating'], 2) if overall_stats['average_rating'] else None
            ),
            'total_reviews': overall_stats['total_reviews'],
            'avg_rating_as_tasker': str(user.avg_rating_as_tasker),
            'avg_rating_as_customer': str(user.avg_rating_as_customer),
            'as_tasker': _role_statistics(all_reviews.filter(rater_role=Review.ROLE_CUSTOMER)),
            'as_customer': _role_statistics(all_reviews.filter(rater_role=Review.ROLE_TASKER)),
            'rating_distribution': _calculate_rating_distribution(all_reviews),
            'most_recent_review_date': overall_stats['most_recent_review'],
            'first_review_date': overall_stats['first_review'],
        }
        return Response(response_data, status=status.HTTP_200_OK)
