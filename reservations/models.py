# ==================== RESERVATIONS/MODELS.PY ====================
import math
import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

from parking.models import ParkingLot, VEHICLE_TYPE_CHOICES
from users.models import CustomUser
from utils.exceptions import InvalidStatusTransition

# Statuses that still hold a slot and take part in overlap/duplicate checks
NON_TERMINAL_STATUSES = ('pending', 'confirmed', 'active')
TERMINAL_STATUSES = ('completed', 'cancelled', 'no_show')

ALLOWED_TRANSITIONS = {
    'pending': {'confirmed', 'cancelled', 'no_show'},
    'confirmed': {'active', 'cancelled', 'no_show'},
    'active': {'completed'},
    'completed': set(),
    'cancelled': set(),
    'no_show': set(),
}


class ReservationQuerySet(models.QuerySet):
    def non_terminal(self):
        return self.filter(status__in=NON_TERMINAL_STATUSES)

    def overlapping(self, parking_lot_id, start_time, end_time, exclude_id=None):
        """Non-terminal reservations on a lot whose interval intersects [start_time, end_time)"""
        queryset = self.non_terminal().filter(
            parking_lot_id=parking_lot_id,
            start_time__lt=end_time,
            end_time__gt=start_time,
        )
        if exclude_id is not None:
            queryset = queryset.exclude(pk=exclude_id)
        return queryset


class Reservation(models.Model):
    STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('active', 'Active - Checked In'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('no_show', 'No Show'),
    )
    CHECK_METHOD_CHOICES = (
        ('qr_code', 'QR Code'),
        ('manual', 'Manual'),
        ('auto', 'Automatic'),
    )

    # Relations
    user = models.ForeignKey(CustomUser, on_delete=models.CASCADE, related_name='reservations')
    parking_lot = models.ForeignKey(ParkingLot, on_delete=models.CASCADE, related_name='reservations')

    # Vehicle
    vehicle_type = models.CharField(max_length=20, choices=VEHICLE_TYPE_CHOICES)
    number_plate = models.CharField(max_length=15, db_index=True)
    vehicle_model = models.CharField(max_length=100, blank=True)
    vehicle_color = models.CharField(max_length=50, blank=True)

    # Time slot
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField()
    duration_hours = models.PositiveIntegerField(default=0)

    # Pricing
    base_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    taxes = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    discount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)

    # Check-in / check-out
    check_in_time = models.DateTimeField(null=True, blank=True)
    check_in_method = models.CharField(max_length=10, choices=CHECK_METHOD_CHOICES, blank=True)
    check_out_time = models.DateTimeField(null=True, blank=True)
    check_out_method = models.CharField(max_length=10, choices=CHECK_METHOD_CHOICES, blank=True)
    overstay_charges = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    qr_code = models.CharField(max_length=64, unique=True, editable=False)
    vehicle_time_hash = models.CharField(max_length=64, db_index=True, editable=False)
    special_requests = models.CharField(max_length=200, blank=True)

    # Cancellation
    cancellation_reason = models.CharField(max_length=255, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ReservationQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status']),
            models.Index(fields=['parking_lot', 'start_time', 'end_time']),
            models.Index(fields=['status', 'start_time']),
            models.Index(fields=['number_plate', 'start_time']),
            models.Index(fields=['number_plate', 'parking_lot', 'status']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['vehicle_time_hash'],
                condition=Q(status__in=NON_TERMINAL_STATUSES),
                name='unique_active_vehicle_time_hash',
            ),
        ]

    def __str__(self):
        return f"Reservation {self.pk} - {self.number_plate} at {self.parking_lot.name}"

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError({'end_time': 'End time must be after start time'})

    def save(self, *args, **kwargs):
        from .validators import generate_reservation_hash, normalize_number_plate

        self.number_plate = normalize_number_plate(self.number_plate)
        if self.start_time and self.end_time:
            duration_seconds = (self.end_time - self.start_time).total_seconds()
            self.duration_hours = math.ceil(duration_seconds / 3600)
            self.vehicle_time_hash = generate_reservation_hash(
                self.number_plate, self.start_time, self.end_time, self.parking_lot_id
            )
        if not self.qr_code:
            self.qr_code = f"PRS_{uuid.uuid4().hex}"
        super().save(*args, **kwargs)

    @property
    def is_non_terminal(self):
        return self.status in NON_TERMINAL_STATUSES

    @property
    def can_cancel(self):
        hours_until_start = (self.start_time - timezone.now()).total_seconds() / 3600
        return hours_until_start > 1 and self.status in ('pending', 'confirmed')

    def transition_to(self, new_status):
        """Move forward through the lifecycle; terminal states never change"""
        if new_status not in ALLOWED_TRANSITIONS.get(self.status, set()):
            raise InvalidStatusTransition(
                f"Cannot change reservation status from {self.status} to {new_status}"
            )
        self.status = new_status

    def calculate_refund(self, now=None):
        """Refund amount based on how far ahead of the start the booking is cancelled"""
        now = now or timezone.now()
        hours_until_start = (self.start_time - now).total_seconds() / 3600

        if hours_until_start > 24:
            refund_percentage = 100
        elif hours_until_start > 12:
            refund_percentage = 75
        elif hours_until_start > 2:
            refund_percentage = 50
        else:
            refund_percentage = 0

        return (Decimal(self.total_amount) * refund_percentage / 100).quantize(Decimal('0.01'))
