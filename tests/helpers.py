from datetime import datetime, timezone as dt_timezone
from itertools import cycle

from django.contrib.auth import get_user_model

from parking.models import ParkingLot
from reservations.models import Reservation

User = get_user_model()

_phone_suffix = cycle(range(10, 100))

# Monday, far enough ahead to always be in the future
MONDAY = datetime(2030, 6, 3, tzinfo=dt_timezone.utc)
SUNDAY = datetime(2030, 6, 2, tzinfo=dt_timezone.utc)


def at(day, hour, minute=0):
    return day.replace(hour=hour, minute=minute)


def make_user(username, user_type='user', **extra):
    return User.objects.create_user(
        username=username,
        email=f'{username}@test.com',
        password='testpass123',
        phone_number=f'+9198765432{next(_phone_suffix):02d}',
        user_type=user_type,
        business_name=extra.pop('business_name', 'Test Parking Co' if user_type == 'vendor' else ''),
        **extra
    )


def make_lot(vendor, **extra):
    fields = {
        'name': 'City Centre Parking',
        'street': 'MG Road',
        'city': 'Pune',
        'state': 'Maharashtra',
        'pincode': '411001',
        'latitude': 18.5204,
        'longitude': 73.8567,
        'capacity_two_wheeler': 10,
        'capacity_four_wheeler': 5,
        'capacity_heavy_vehicle': 0,
        'hourly_rate_two_wheeler': 10,
        'hourly_rate_four_wheeler': 20,
        'hourly_rate_heavy_vehicle': 50,
    }
    fields.update(extra)
    return ParkingLot.objects.create(vendor=vendor, **fields)


def make_reservation(user, parking_lot, number_plate, start_time, end_time, **extra):
    fields = {'vehicle_type': 'four_wheeler', 'status': 'confirmed', 'total_amount': 100}
    fields.update(extra)
    return Reservation.objects.create(
        user=user,
        parking_lot=parking_lot,
        number_plate=number_plate,
        start_time=start_time,
        end_time=end_time,
        **fields
    )
