# ==================== RESERVATIONS/ADMIN.PY ====================
from django.contrib import admin
from .models import Reservation


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'parking_lot', 'vehicle_type', 'number_plate', 'status', 'start_time', 'end_time', 'total_amount']
    list_filter = ['status', 'vehicle_type', 'created_at']
    search_fields = ['user__username', 'parking_lot__name', 'number_plate', 'qr_code']
    readonly_fields = ['qr_code', 'vehicle_time_hash', 'duration_hours', 'created_at', 'updated_at']
