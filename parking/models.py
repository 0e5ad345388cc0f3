# parking/models.py
from django.db import models
from django.utils import timezone
from django.core.validators import MinValueValidator, MaxValueValidator
from users.models import CustomUser

VEHICLE_TYPE_CHOICES = (
    ('two_wheeler', 'Two Wheeler'),
    ('four_wheeler', 'Four Wheeler'),
    ('heavy_vehicle', 'Heavy Vehicle'),
)
VEHICLE_TYPES = [choice[0] for choice in VEHICLE_TYPE_CHOICES]

DAYS_OF_WEEK = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

AMENITY_CHOICES = (
    ('security_camera', 'Security Camera'),
    ('security_guard', 'Security Guard'),
    ('covered_parking', 'Covered Parking'),
    ('ev_charging', 'EV Charging'),
    ('wash_service', 'Wash Service'),
    ('valet_parking', 'Valet Parking'),
    ('disabled_access', 'Disabled Access'),
    ('24_7_access', '24/7 Access'),
    ('restrooms', 'Restrooms'),
    ('waiting_area', 'Waiting Area'),
)


def default_operating_hours():
    return {
        day: {'is_open': True, 'open_time': '00:00', 'close_time': '23:59'}
        for day in DAYS_OF_WEEK
    }


class ParkingLot(models.Model):
    vendor = models.ForeignKey(CustomUser, on_delete=models.CASCADE, related_name='parking_lots')
    # Location info
    name = models.CharField(max_length=100)
    description = models.TextField(max_length=500, blank=True)
    street = models.CharField(max_length=255)
    city = models.CharField(max_length=100, db_index=True)
    state = models.CharField(max_length=100)
    pincode = models.CharField(max_length=6)
    latitude = models.FloatField(validators=[MinValueValidator(-90), MaxValueValidator(90)])
    longitude = models.FloatField(validators=[MinValueValidator(-180), MaxValueValidator(180)])
    contact_phone = models.CharField(max_length=15, blank=True)

    # Independent capacity pool per vehicle type
    capacity_two_wheeler = models.PositiveIntegerField(default=0)
    capacity_four_wheeler = models.PositiveIntegerField(default=0)
    capacity_heavy_vehicle = models.PositiveIntegerField(default=0)

    # Hourly pricing per vehicle type
    hourly_rate_two_wheeler = models.DecimalField(max_digits=10, decimal_places=2, default=0,
                                                  validators=[MinValueValidator(0)])
    hourly_rate_four_wheeler = models.DecimalField(max_digits=10, decimal_places=2, default=0,
                                                   validators=[MinValueValidator(0)])
    hourly_rate_heavy_vehicle = models.DecimalField(max_digits=10, decimal_places=2, default=0,
                                                    validators=[MinValueValidator(0)])

    amenities = models.JSONField(default=list, blank=True)  # ["ev_charging", "restrooms"]
    operating_hours = models.JSONField(default=default_operating_hours)

    # Stats
    rating = models.DecimalField(max_digits=3, decimal_places=2, default=0)
    total_reviews = models.IntegerField(default=0)

    is_active = models.BooleanField(default=True, db_index=True)
    is_verified = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['city']),
            models.Index(fields=['vendor']),
            models.Index(fields=['is_active', 'is_verified']),
        ]

    def __str__(self):
        return f"{self.name} - {self.city}"

    def get_capacity(self, vehicle_type):
        """Total slots for a vehicle type; raises ValueError for unknown types"""
        if vehicle_type not in VEHICLE_TYPES:
            raise ValueError(f"Unsupported vehicle type: {vehicle_type}")
        return getattr(self, f'capacity_{vehicle_type}')

    def get_hourly_rate(self, vehicle_type):
        if vehicle_type not in VEHICLE_TYPES:
            raise ValueError(f"Unsupported vehicle type: {vehicle_type}")
        return getattr(self, f'hourly_rate_{vehicle_type}')

    def get_operating_hours(self, day_name):
        hours = (self.operating_hours or {}).get(day_name)
        if hours is None:
            return default_operating_hours()[day_name]
        return hours

    def is_open_on(self, day_name):
        return bool(self.get_operating_hours(day_name).get('is_open', False))

    def is_currently_open(self):
        """Check if lot is open now based on today's operating hours"""
        now = timezone.localtime()
        hours = self.get_operating_hours(DAYS_OF_WEEK[now.weekday()])
        if not hours.get('is_open', False):
            return False
        current = now.strftime('%H:%M')
        return hours.get('open_time', '00:00') <= current <= hours.get('close_time', '23:59')
