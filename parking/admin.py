# ==================== PARKING/ADMIN.PY ====================
from django.contrib import admin
from .models import ParkingLot


@admin.register(ParkingLot)
class ParkingLotAdmin(admin.ModelAdmin):
    list_display = ['name', 'vendor', 'city', 'capacity_two_wheeler', 'capacity_four_wheeler', 'capacity_heavy_vehicle', 'is_active', 'is_verified', 'rating']
    list_filter = ['is_active', 'is_verified', 'city', 'created_at']
    search_fields = ['name', 'street', 'city', 'vendor__username', 'vendor__business_name']
    readonly_fields = ['created_at', 'updated_at', 'rating', 'total_reviews']
    fieldsets = (
        ('Basic Info', {'fields': ('vendor', 'name', 'description', 'contact_phone')}),
        ('Address', {'fields': ('street', 'city', 'state', 'pincode', 'latitude', 'longitude')}),
        ('Capacity', {'fields': ('capacity_two_wheeler', 'capacity_four_wheeler', 'capacity_heavy_vehicle')}),
        ('Pricing', {'fields': ('hourly_rate_two_wheeler', 'hourly_rate_four_wheeler', 'hourly_rate_heavy_vehicle')}),
        ('Amenities & Hours', {'fields': ('amenities', 'operating_hours')}),
        ('Status', {'fields': ('is_active', 'is_verified', 'rating', 'total_reviews')}),
        ('Timestamps', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )
