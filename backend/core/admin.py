from django.contrib import admin

from .models import IdempotencyRecord, OutboxTask


@admin.register(IdempotencyRecord)
class IdempotencyRecordAdmin(admin.ModelAdmin):
    list_display = ("actor_id", "endpoint", "key", "status_code", "created_at")
    search_fields = ("actor_id", "endpoint", "key")
    readonly_fields = ("actor_id", "endpoint", "key", "status_code",
                       "headers", "body", "created_at")


@admin.register(OutboxTask)
class OutboxTaskAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "status", "attempts", "available_at", "updated_at")
    list_filter = ("status", "name")
    readonly_fields = ("created_at", "updated_at")
