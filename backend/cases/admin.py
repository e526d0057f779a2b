from django.contrib import admin

from .models import CaseStatusLog, RescueCase


class CaseStatusLogInline(admin.TabularInline):
    model = CaseStatusLog
    extra = 0
    readonly_fields = ("from_status", "to_status", "changed_by", "created_at")


@admin.register(RescueCase)
class RescueCaseAdmin(admin.ModelAdmin):
    list_display = ("id", "status", "visibility", "reporter",
                    "assigned_rescuer", "wound_severity", "created_at")
    list_filter = ("status", "visibility")
    search_fields = ("description", "landmark_hint", "reporter__username")
    readonly_fields = ("status", "assigned_rescuer", "resolved_at",
                       "created_at", "updated_at")
    inlines = [CaseStatusLogInline]


@admin.register(CaseStatusLog)
class CaseStatusLogAdmin(admin.ModelAdmin):
    list_display = ("case", "from_status", "to_status",
                    "changed_by", "created_at")
    list_filter = ("to_status",)
