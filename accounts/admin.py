from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import CustomUser as User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin interface for portal accounts.
    """
    list_display = [
        'email',
        'first_name',
        'last_name',
        'company_name',
        'role',
        'is_active',
        'date_joined'
    ]
    list_filter = [
        'role',
        'is_active',
        'is_staff',
        'is_superuser',
        'date_joined'
    ]
    search_fields = ['email', 'first_name', 'last_name', 'company_name']
    ordering = ['-date_joined']

    fieldsets = (
        (None, {
            'fields': ('email', 'password')
        }),
        (_('Personal Info'), {
            'fields': ('first_name', 'last_name', 'phone')
        }),
        (_('Company'), {
            'fields': ('company_name', 'company_address', 'pic_name', 'pic_position')
        }),
        (_('Role & Permissions'), {
            'fields': (
                'role',
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions'
            )
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'updated_at')
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'email',
                'password1',
                'password2',
                'first_name',
                'last_name',
                'company_name',
                'role',
                'is_active',
            ),
        }),
    )

    readonly_fields = ['date_joined', 'last_login', 'updated_at']
