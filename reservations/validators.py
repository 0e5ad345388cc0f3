"""
Reservation validation utilities.

The vehicle/time fingerprint and the three-step uniqueness check keep one
vehicle from holding two overlapping reservations, independently of lot
capacity.
"""
import hashlib
import logging
import re
from datetime import datetime, timedelta, timezone as dt_timezone

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .availability import AvailabilityManager
from .models import Reservation

EPOCH = datetime(1970, 1, 1, tzinfo=dt_timezone.utc)
_WHITESPACE = re.compile(r'\s+')

logger = logging.getLogger(__name__)


def normalize_number_plate(number_plate):
    """Uppercase the plate and strip all whitespace"""
    return _WHITESPACE.sub('', number_plate or '').upper()


def _to_datetime(value):
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is None:
            raise ValueError(f"Invalid datetime: {value}")
        value = parsed
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def _epoch_millis(value):
    return (_to_datetime(value) - EPOCH) // timedelta(milliseconds=1)


def _lot_key(parking_lot_id):
    return str(getattr(parking_lot_id, 'pk', parking_lot_id))


def generate_reservation_hash(number_plate, start_time, end_time, parking_lot_id):
    """
    Deterministic fingerprint of a vehicle booking a lot for a time window.

    Args:
        number_plate: Raw vehicle number plate (normalized here)
        start_time: Reservation start (datetime or ISO string)
        end_time: Reservation end (datetime or ISO string)
        parking_lot_id: Parking lot primary key or instance

    Returns:
        SHA-256 hex digest of "PLATE_startMs_endMs_lotId"
    """
    hash_data = '_'.join([
        normalize_number_plate(number_plate),
        str(_epoch_millis(start_time)),
        str(_epoch_millis(end_time)),
        _lot_key(parking_lot_id),
    ])
    return hashlib.sha256(hash_data.encode('utf-8')).hexdigest()


def check_time_overlap(start1, end1, start2, end2):
    return AvailabilityManager.overlaps(start1, end1, start2, end2)


def validate_reservation_uniqueness(number_plate, start_time, end_time, parking_lot_id, user_id,
                                    exclude_id=None):
    """
    Check a candidate booking against existing non-terminal reservations.

    Checks run in order and the first match wins:
    EXACT_DUPLICATE (same plate, lot and window), TIME_OVERLAP (same plate,
    overlapping window at any lot) and USER_DUPLICATE (same user and lot,
    overlapping window).

    Returns:
        dict with is_valid, message and, on rejection, type and
        conflicting_reservation
    """
    try:
        normalized_plate = normalize_number_plate(number_plate)
        start_time = _to_datetime(start_time)
        end_time = _to_datetime(end_time)
        lot_id = _lot_key(parking_lot_id)

        candidates = Reservation.objects.non_terminal()
        if exclude_id is not None:
            candidates = candidates.exclude(pk=exclude_id)

        exact_duplicate = candidates.filter(
            number_plate=normalized_plate,
            start_time=start_time,
            end_time=end_time,
            parking_lot_id=lot_id,
        ).first()
        if exact_duplicate:
            return {
                'is_valid': False,
                'type': 'EXACT_DUPLICATE',
                'message': f'Duplicate reservation detected for vehicle {normalized_plate}',
                'conflicting_reservation': exact_duplicate,
            }

        overlapping = candidates.filter(
            number_plate=normalized_plate,
            start_time__lt=end_time,
            end_time__gt=start_time,
        ).first()
        if overlapping:
            return {
                'is_valid': False,
                'type': 'TIME_OVERLAP',
                'message': f'Vehicle {normalized_plate} already has a reservation during this time period',
                'conflicting_reservation': overlapping,
            }

        user_duplicate = candidates.filter(
            user_id=user_id,
            parking_lot_id=lot_id,
            start_time__lt=end_time,
            end_time__gt=start_time,
        ).first()
        if user_duplicate:
            return {
                'is_valid': False,
                'type': 'USER_DUPLICATE',
                'message': 'You already have a reservation for this time period at this parking lot',
                'conflicting_reservation': user_duplicate,
            }

        return {
            'is_valid': True,
            'message': 'Reservation is unique and valid',
        }
    except Exception:
        logger.exception(f"Error validating reservation for {number_plate} at parking lot {parking_lot_id}")
        return {
            'is_valid': False,
            'message': 'Error validating reservation',
        }


def get_conflicting_reservations(number_plate, start_time, end_time, exclude_id=None):
    """All non-terminal reservations of a vehicle overlapping the window, earliest first"""
    queryset = Reservation.objects.non_terminal().filter(
        number_plate=normalize_number_plate(number_plate),
        start_time__lt=_to_datetime(end_time),
        end_time__gt=_to_datetime(start_time),
    )
    if exclude_id is not None:
        queryset = queryset.exclude(pk=exclude_id)
    return queryset.select_related('parking_lot').order_by('start_time')
