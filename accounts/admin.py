"""
Django Admin configuration for accounts.
"""
from django.contrib import admin
from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ['id', 'email', 'name', 'role', 'is_active', 'date_joined']
    list_filter = ['role', 'is_active', 'date_joined']
    search_fields = ['email', 'name']
    ordering = ['email']
    readonly_fields = ['last_login', 'date_joined']
    exclude = ['password', 'groups', 'user_permissions']
