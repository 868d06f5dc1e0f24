from django.contrib import admin

from .models import CategoryRoleMapping, Company, Report, ReportStatusLog


class ReportStatusLogInline(admin.TabularInline):
    model = ReportStatusLog
    extra = 0
    readonly_fields = ("from_status", "to_status", "changed_by",
                       "message", "created_at")


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "category", "status", "assignee",
                    "is_anonymous", "created_at")
    list_filter = ("status", "category", "is_anonymous")
    search_fields = ("title", "description", "address")
    readonly_fields = ("latitude", "longitude", "is_anonymous", "reporter")
    raw_id_fields = ("assignee", "external_assignee")
    inlines = [ReportStatusLogInline]


@admin.register(ReportStatusLog)
class ReportStatusLogAdmin(admin.ModelAdmin):
    list_display = ("report", "from_status", "to_status",
                    "changed_by", "created_at")
    list_filter = ("to_status",)


@admin.register(CategoryRoleMapping)
class CategoryRoleMappingAdmin(admin.ModelAdmin):
    list_display = ("category", "role", "department", "updated_at")
    list_filter = ("role",)


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "created_at")
    list_filter = ("category",)
    search_fields = ("name",)
