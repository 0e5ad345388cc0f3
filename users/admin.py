# ==================== USERS/ADMIN.PY ====================
from django.contrib import admin
from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = ['username', 'email', 'phone_number', 'user_type', 'business_name', 'is_verified', 'created_at']
    list_filter = ['user_type', 'is_verified', 'created_at']
    search_fields = ['username', 'email', 'phone_number', 'business_name']
    readonly_fields = ['created_at', 'updated_at']
