"""
URL configuration for the tasker_marketplace project.
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import (
    TokenRefreshView,
    TokenBlacklistView,
)
from core.views import (
    EmailTokenObtainPairView,
    JobListCreateView,
    MyJobsView,
    JobDetailView,
    JobTransitionView,
    JobApplicationsView,
    JobMatchesView,
    TaskerMatchPercentageView,
    TaskerJobMatchesView,
    JobCooldownView,
    JobRatingsView,
    ApplicationListCreateView,
    MyApplicationsView,
    ApplicationDetailView,
    ReviewCreateView,
    ReviewDetailView,
    PendingReviewsView,
    UserReviewsView,
    UserRatingSummaryView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # JWT Authentication endpoints
    path('api/token/', EmailTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/auth/logout/', TokenBlacklistView.as_view(), name='user_logout'),

    # Job endpoints
    path('api/jobs/', JobListCreateView.as_view(), name='job_list'),
    path('api/jobs/mine/', MyJobsView.as_view(), name='my_jobs'),
    path('api/jobs/matches/for-tasker/', TaskerJobMatchesView.as_view(), name='tasker_job_matches'),
    path('api/jobs/<int:job_id>/', JobDetailView.as_view(), name='job_detail'),
    path('api/jobs/<int:job_id>/start/', JobTransitionView.as_view(transition='start'), name='job_start'),
    path('api/jobs/<int:job_id>/finish/', JobTransitionView.as_view(transition='finish'), name='job_finish'),
    path('api/jobs/<int:job_id>/cancel/', JobTransitionView.as_view(transition='cancel'), name='job_cancel'),
    path('api/jobs/<int:job_id>/applications/', JobApplicationsView.as_view(), name='job_applications'),
    path('api/jobs/<int:job_id>/matches/', JobMatchesView.as_view(), name='job_matches'),
    path('api/jobs/<int:job_id>/matches/<int:tasker_id>/', TaskerMatchPercentageView.as_view(), name='job_tasker_match'),
    path('api/jobs/<int:job_id>/cooldown/', JobCooldownView.as_view(), name='job_cooldown'),
    path('api/jobs/<int:job_id>/ratings/', JobRatingsView.as_view(), name='job_ratings'),

    # Application endpoints
    path('api/applications/', ApplicationListCreateView.as_view(), name='application_list'),
    path('api/applications/mine/', MyApplicationsView.as_view(), name='my_applications'),
    path('api/applications/<int:application_id>/', ApplicationDetailView.as_view(), name='application_detail'),

    # Review endpoints
    path('api/reviews/', ReviewCreateView.as_view(), name='review_create'),
    path('api/reviews/pending/', PendingReviewsView.as_view(), name='pending_reviews'),
    path('api/reviews/<int:review_id>/', ReviewDetailView.as_view(), name='review_detail'),
    path('api/users/<int:user_id>/reviews/', UserReviewsView.as_view(), name='user_reviews'),
    path('api/users/<int:user_id>/rating-summary/', UserRatingSummaryView.as_view(), name='user_rating_summary'),
]
