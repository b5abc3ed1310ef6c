"""
Django admin configuration for the marketplace models.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import Bid, Job, Notification, Printer, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin interface for the email-login User model.
    """

    list_display = ['email', 'username', 'user_type', 'is_staff', 'is_active', 'created_at']

    list_filter = ['user_type', 'is_staff', 'is_superuser', 'is_active', 'created_at']

    search_fields = ['email', 'username', 'first_name', 'last_name']

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('email', 'username', 'password')
        }),
        (_('Personal Info'), {
            'fields': ('first_name', 'last_name', 'user_type')
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
            'fields': ('email', 'username', 'password1', 'password2', 'user_type'),
        }),
    )

    readonly_fields = ['created_at', 'updated_at', 'last_login', 'date_joined']

    list_per_page = 25


class BidInline(admin.TabularInline):
    """Bids shown on the job page. Bids change only through the API."""
    model = Bid
    extra = 0
    fields = ['printer', 'bidder', 'amount', 'estimated_completion_days', 'status', 'created_at']
    readonly_fields = fields
    can_delete = False


@admin.register(Printer)
class PrinterAdmin(admin.ModelAdmin):
    list_display = [
        'name',
        'owner',
        'location',
        'price_per_gram',
        'status',
        'rating',
        'completed_jobs',
    ]

    list_filter = ['status', 'created_at']

    search_fields = ['name', 'location', 'owner__email']

    readonly_fields = ['completed_jobs', 'created_at']

    list_per_page = 25


@admin.register(Job)
class JobAdmin(admin.ModelAdmin):
    list_display = [
        'id',
        'file_name',
        'customer',
        'printer',
        'material',
        'status',
        'final_cost',
        'created_at',
    ]

    list_filter = ['status', 'payment_status', 'created_at']

    search_fields = ['file_name', 'customer__email', 'printer__name']

    readonly_fields = ['started_at', 'completed_at', 'created_at', 'updated_at']

    date_hierarchy = 'created_at'

    inlines = [BidInline]

    fieldsets = (
        (None, {
            'fields': ('customer', 'printer', 'file_name', 'stl_file_url', 'notes')
        }),
        (_('Print Details'), {
            'fields': ('material', 'estimated_weight', 'estimated_cost', 'final_cost')
        }),
        (_('Status'), {
            'fields': ('status', 'payment_status', 'started_at', 'completed_at')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


@admin.register(Bid)
class BidAdmin(admin.ModelAdmin):
    list_display = ['id', 'job', 'printer', 'bidder', 'amount', 'estimated_completion_days', 'status', 'created_at']

    list_filter = ['status', 'created_at']

    search_fields = ['job__file_name', 'printer__name', 'bidder__email']

    readonly_fields = ['created_at', 'updated_at', 'resolved_at']


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'type', 'title', 'read', 'created_at']

    list_filter = ['type', 'read']

    search_fields = ['user__email', 'title']
