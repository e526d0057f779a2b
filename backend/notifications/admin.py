from django.contrib import admin

from .models import NotificationRecord


@admin.register(NotificationRecord)
class NotificationRecordAdmin(admin.ModelAdmin):
    list_display = ("case", "user", "kind", "sent_at")
    list_filter = ("kind",)
    search_fields = ("user__username",)
    readonly_fields = ("case", "user", "kind", "sent_at")
