"""
Django admin configuration for the Tasker Marketplace models.

Status fields are read-only here: lifecycle changes go through the API so
that locking, notes, cooldowns and events stay consistent.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import Application, ApplicationNote, Job, ReapplicationCooldown, Review, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin with the account type, skills and cached
    ratings.
    """

    list_display = [
        'email',
        'username',
        'user_type',
        'avg_rating_as_tasker',
        'avg_rating_as_customer',
        'is_staff',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'user_type',
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'first_name',
        'last_name',
        'skills',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': (
                'first_name',
                'last_name',
                'email',
                'phone_number',
            )
        }),
        (_('Marketplace'), {
            'fields': ('user_type', 'skills', 'avg_rating_as_tasker', 'avg_rating_as_customer')
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'username',
                'email',
                'password1',
                'password2',
                'user_type',
                'skills',
            ),
        }),
    )

    readonly_fields = ['avg_rating_as_tasker', 'avg_rating_as_customer', 'created_at', 'updated_at',
                       'last_login', 'date_joined']

    date_hierarchy = 'created_at'

    list_per_page = 25

    def get_readonly_fields(self, request, obj=None):
        if obj:
            return self.readonly_fields
        return []


# ============================================================================
# Job and Application Admin
# ============================================================================

@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    """Admin interface for Job model."""

    list_display = [
        'id',
        'title',
        'customer',
        'status',
        'budget',
        'city',
        'applications_count',
        'created_at',
    ]

    list_filter = [
        'status',
        'province',
        'created_at',
    ]

    search_fields = [
        'title',
        'description',
        'customer__email',
        'city',
        'required_skills',
    ]

    readonly_fields = ['status', 'applications_count', 'started_at', 'finished_at',
                       'cancelled_at', 'created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('customer', 'title', 'description')
        }),
        (_('Details'), {
            'fields': ('budget', 'city', 'province', 'required_skills')
        }),
        (_('Lifecycle'), {
            'fields': ('status', 'applications_count', 'started_at', 'finished_at', 'cancelled_at')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


class ApplicationNoteInline(admin.TabularInline):
    """Inline admin for cover letters and termination/resignation reasons."""
    model = ApplicationNote
    extra = 0
    fields = ['kind', 'text', 'created_at']
    readonly_fields = ['created_at']


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    """Admin interface for Application model."""

    list_display = [
        'id',
        'job',
        'tasker',
        'status',
        'proposed_budget',
        'accepted_at',
        'created_at',
    ]

    list_filter = [
        'status',
        'created_at',
    ]

    search_fields = [
        'job__title',
        'tasker__email',
        'tasker__username',
    ]

    readonly_fields = ['status', 'accepted_at', 'closed_at', 'created_at', 'updated_at']

    ordering = ['-created_at']

    list_per_page = 25

    inlines = [ApplicationNoteInline]


@admin.register(ReapplicationCooldown)
class ReapplicationCooldownAdmin(admin.ModelAdmin):
    """Admin interface for reapplication cooldown anchors."""

    list_display = ['id', 'job', 'tasker', 'started_at']

    search_fields = ['job__title', 'tasker__email']

    ordering = ['-started_at']

    list_per_page = 50


# ============================================================================
# Review Admin
# ============================================================================

@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    """Admin interface for Review model."""

    list_display = [
        'id',
        'rater',
        'ratee',
        'rater_role',
        'job',
        'rating',
        'edited',
        'created_at',
    ]

    list_filter = [
        'rater_role',
        'rating',
        'edited',
        'created_at',
    ]

    search_fields = [
        'rater__email',
        'rater__username',
        'ratee__email',
        'ratee__username',
        'comment',
    ]

    readonly_fields = ['created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('job', 'rater', 'ratee', 'rater_role')
        }),
        (_('Review Content'), {
            'fields': ('rating', 'comment', 'edited')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )
