from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import Department, DepartmentRole, Role, User


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ("name", "description")
    search_fields = ("name",)


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ("name", "classification", "description")
    list_filter = ("classification",)
    search_fields = ("name",)


@admin.register(DepartmentRole)
class DepartmentRoleAdmin(admin.ModelAdmin):
    list_display = ("id", "department", "role")
    list_filter = ("department", "role__classification")


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "first_name", "last_name", "company", "is_active")
    search_fields = ("username", "email", "first_name", "last_name")
    list_filter = ("is_active", "is_staff", "positions__role__classification")
    filter_horizontal = ("groups", "user_permissions", "positions")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Municipal Positions", {"fields": ("positions", "company")}),
    )
