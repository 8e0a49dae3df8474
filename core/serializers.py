"""
Serializers for authentication, jobs, applications and reviews.

Input serializers validate shape only; lifecycle rules live in core.jobs,
core.applications and core.ratings and are applied by the views.
"""

from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework import serializers
from django.contrib.auth import get_user_model

from .models import Application, Job, Review, split_skills
from .validators import validate_skill_list

User = get_user_model()


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom serializer to use email instead of username for authentication.
    """
    username_field = 'email'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if 'username' in self.fields:
            del self.fields['username']
        if 'email' not in self.fields:
            self.fields['email'] = serializers.EmailField()

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['user_type'] = user.user_type
        return token


class UserSummarySerializer(serializers.ModelSerializer):
    """
    Nested serializer for user information in job, application and review
    responses.

    Fields:
    - id: User ID
    - email: User email address
    - user_type: 'customer', 'tasker' or 'admin'
    """

    class Meta:
        model = User
        fields = ['id', 'email', 'first_name', 'last_name', 'user_type']
        read_only_fields = fields


# ============================================================================
# Job Serializers
# ============================================================================

class JobWriteSerializer(serializers.ModelSerializer):
    """
    Serializer for creating and editing jobs.

    Fields:
    - title: Required, non-empty
    - description: Required, non-empty
    - budget: Required, greater than 0
    - city, province: Optional location
    - required_skills: Optional comma separated skill list
    """

    class Meta:
        model = Job
        fields = ['title', 'description', 'budget', 'city', 'province', 'required_skills']
        extra_kwargs = {
            'title': {'required': True},
            'description': {'required': True},
            'budget': {'required': True},
        }

    def validate_title(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Title cannot be empty.")
        return value

    def validate_description(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Description cannot be empty.")
        return value

    def validate_budget(self, value):
        """
        Validate budget is a positive amount.

        Raises:
            ValidationError: If budget is zero or negative
        """
        if value <= 0:
            raise serializers.ValidationError("Budget must be greater than 0.")
        return value

    def validate_required_skills(self, value):
        validate_skill_list(value)
        return ', '.join(split_skills(value))


class JobSerializer(serializers.ModelSerializer):
    """
    Read serializer for job list and detail responses.
    """

    customer = UserSummarySerializer(read_only=True)
    skills = serializers.SerializerMethodField()

    class Meta:
        model = Job
        fields = [
            'id',
            'customer',
            'title',
            'description',
            'budget',
            'city',
            'province',
            'required_skills',
            'skills',
            'status',
            'applications_count',
            'started_at',
            'finished_at',
            'cancelled_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_skills(self, obj):
        return obj.skill_list()

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if hasattr(instance, 'match_percentage'):
            data['match_percentage'] = instance.match_percentage
        return data


# ============================================================================
# Application Serializers
# ============================================================================

class ApplicationCreateSerializer(serializers.Serializer):
    """
    Input for submitting an application.

    Fields:
    - job_id: Required, job to apply to
    - cover_letter: Optional text
    - proposed_budget: Optional counter-offer, greater than 0
    """

    job_id = serializers.IntegerField(required=True)
    cover_letter = serializers.CharField(required=False, allow_blank=True, default='')
    proposed_budget = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True, default=None
    )

    def validate_proposed_budget(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("Proposed budget must be greater than 0.")
        return value


class ApplicationTransitionSerializer(serializers.Serializer):
    """
    Input for changing an application's status.

    Fields:
    - status: Required, one of accepted, rejected, withdrawn
    - reason: Required when leaving the accepted status (termination or
      resignation); checked by core.applications
    """

    status = serializers.ChoiceField(
        choices=[
            Application.STATUS_ACCEPTED,
            Application.STATUS_REJECTED,
            Application.STATUS_WITHDRAWN,
        ],
        required=True,
    )
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ApplicationSerializer(serializers.ModelSerializer):
    """
    Read serializer for applications.

    The tagged notes are flattened into cover_letter, termination_reason and
    resignation_reason. match_percentage is present only when the view
    annotated the application with a score.
    """

    tasker = UserSummarySerializer(read_only=True)
    job_id = serializers.IntegerField(read_only=True)
    job_title = serializers.CharField(source='job.title', read_only=True)
    job_status = serializers.CharField(source='job.status', read_only=True)
    cover_letter = serializers.CharField(read_only=True)
    termination_reason = serializers.CharField(read_only=True)
    resignation_reason = serializers.CharField(read_only=True)
    was_fired = serializers.SerializerMethodField()
    has_resigned = serializers.SerializerMethodField()

    class Meta:
        model = Application
        fields = [
            'id',
            'job_id',
            'job_title',
            'job_status',
            'tasker',
            'status',
            'proposed_budget',
            'cover_letter',
            'termination_reason',
            'resignation_reason',
            'was_fired',
            'has_resigned',
            'accepted_at',
            'closed_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_was_fired(self, obj):
        return obj.was_fired()

    def get_has_resigned(self, obj):
        return obj.has_resigned()

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if hasattr(instance, 'match_percentage'):
            data['match_percentage'] = instance.match_percentage
        return data


# ============================================================================
# Review Serializers
# ============================================================================

class ReviewCreateSerializer(serializers.Serializer):
    """
    Input for submitting a review.

    Fields:
    - job_id: Required, finished job being reviewed
    - ratee_id: Required, user being rated
    - rating: Required, integer from 1-5
    - comment: Optional text feedback
    """

    job_id = serializers.IntegerField(required=True)
    ratee_id = serializers.IntegerField(required=True)
    rating = serializers.IntegerField(required=True)
    comment = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_rating(self, value):
        """
        Validate rating is integer between 1-5.

        Raises:
            ValidationError: If rating is not between 1-5
        """
        if value < 1 or value > 5:
            raise serializers.ValidationError("Rating must be between 1 and 5.")
        return value


class ReviewUpdateSerializer(serializers.Serializer):
    """
    Input for the single permitted review edit (PATCH).

    At least one of rating or comment must be provided.
    """

    rating = serializers.IntegerField(required=False)
    comment = serializers.CharField(required=False, allow_blank=True)

    def validate_rating(self, value):
        if value < 1 or value > 5:
            raise serializers.ValidationError("Rating must be between 1 and 5.")
        return value

    def validate(self, attrs):
        if 'rating' not in attrs and 'comment' not in attrs:
            raise serializers.ValidationError("Provide a rating or a comment to edit.")
        return attrs


class ReviewSerializer(serializers.ModelSerializer):
    """
    Read serializer for reviews.

    Fields:
    - rater, ratee: Nested user information
    - rater_role: 'customer' (review of a tasker) or 'tasker' (review of a
      customer)
    - edited: True once the single edit has been used
    """

    rater = UserSummarySerializer(read_only=True)
    ratee = UserSummarySerializer(read_only=True)
    job_id = serializers.IntegerField(read_only=True)
    job_title = serializers.CharField(source='job.title', read_only=True)

    class Meta:
        model = Review
        fields = [
            'id',
            'job_id',
            'job_title',
            'rater',
            'ratee',
            'rater_role',
            'rating',
            'comment',
            'edited',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class UserReviewSerializer(serializers.ModelSerializer):
    """
    Serializer for the reviews a user received.

    review_context tells in which role the user was rated:
    'as_tasker' for reviews written by customers, 'as_customer' for reviews
    written by taskers.
    """

    rater = UserSummarySerializer(read_only=True)
    job_id = serializers.IntegerField(read_only=True)
    job_title = serializers.CharField(source='job.title', read_only=True)
    review_context = serializers.SerializerMethodField()

    class Meta:
        model = Review
        fields = [
            'id',
            'rating',
            'comment',
            'edited',
            'created_at',
            'rater',
            'job_id',
            'job_title',
            'review_context',
        ]
        read_only_fields = fields

    def get_review_context(self, obj):
        if obj.rater_role == Review.ROLE_CUSTOMER:
            return 'as_tasker'
        return 'as_customer'
