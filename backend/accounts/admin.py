from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import UserProfile


@admin.register(UserProfile)
class UserProfileAdmin(BaseUserAdmin):
    list_display = ("username", "role", "verification_status", "trust_score",
                    "area_radius_m", "is_active", "created_at")
    search_fields = ("username", "email")
    list_filter = ("role", "verification_status", "is_active")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Rescue Profile", {"fields": ("role", "verification_status", "trust_score")}),
        ("Home Area", {"fields": ("area_lat", "area_lng", "area_radius_m")}),
        ("Last Known Location", {"fields": ("last_lat", "last_lng", "last_active")}),
        ("Push", {"fields": ("fcm_token",)}),
    )
