# ==================== RESERVATIONS/AVAILABILITY.PY ====================
import logging
from datetime import date, datetime, time, timedelta

from django.utils import timezone
from django.utils.dateparse import parse_date

from parking.models import ParkingLot, VEHICLE_TYPES, DAYS_OF_WEEK
from .models import Reservation

logger = logging.getLogger(__name__)

# Sort keys for sweep events: at equal timestamps an end frees its slot
# before a start claims one.
END_EVENT = 0
START_EVENT = 1


def _availability_result(available, message, available_slots=0, total_capacity=0, occupied_slots=0):
    return {
        'available': available,
        'available_slots': available_slots,
        'total_capacity': total_capacity,
        'occupied_slots': occupied_slots,
        'message': message,
    }


class AvailabilityManager:
    """Capacity checks for parking lots over half-open time windows"""

    @staticmethod
    def overlaps(start1, end1, start2, end2):
        """[start1, end1) and [start2, end2) overlap; touching intervals do not"""
        return start1 < end2 and end1 > start2

    @staticmethod
    def calculate_occupied_slots(reservations, start_time, end_time, vehicle_type=None):
        """
        Peak number of reservations active at any single instant in [start_time, end_time).

        Uses a sweep line over the reservation intervals clipped to the window,
        O(n log n) in the number of reservations. Counting every overlapping
        reservation would overcount, since two reservations can each overlap
        the window without overlapping each other.

        Args:
            reservations: Reservation instances or (start, end) pairs
            start_time: Window start
            end_time: Window end
            vehicle_type: If given, only reservations of this type are counted

        Returns:
            Maximum concurrent reservations (0 for no input)
        """
        events = []
        for reservation in reservations:
            if isinstance(reservation, (tuple, list)):
                interval_start, interval_end = reservation
            else:
                if vehicle_type is not None and reservation.vehicle_type != vehicle_type:
                    continue
                interval_start, interval_end = reservation.start_time, reservation.end_time

            if not AvailabilityManager.overlaps(interval_start, interval_end, start_time, end_time):
                continue

            events.append((max(interval_start, start_time), START_EVENT))
            events.append((min(interval_end, end_time), END_EVENT))

        events.sort()

        current_overlap = 0
        max_overlap = 0
        for _, event_type in events:
            if event_type == START_EVENT:
                current_overlap += 1
                max_overlap = max(max_overlap, current_overlap)
            else:
                current_overlap -= 1

        return max_overlap

    @staticmethod
    def get_day_of_week(moment):
        """Weekday name of a datetime in the project's local time zone"""
        if timezone.is_aware(moment):
            moment = timezone.localtime(moment)
        return DAYS_OF_WEEK[moment.weekday()]

    @staticmethod
    def check_availability(parking_lot_id, start_time, end_time, vehicle_type, quantity=1):
        """
        Decide whether a lot can take `quantity` more vehicles of a type for a window.

        Not-available outcomes (inactive lot, closed day, full capacity) are
        normal results. Unexpected errors are logged and reported as
        unavailable so a store failure is never read as free capacity.

        Returns:
            dict with available, available_slots, total_capacity,
            occupied_slots and message
        """
        try:
            if vehicle_type not in VEHICLE_TYPES:
                return _availability_result(False, f'Unsupported vehicle type: {vehicle_type}')
            if quantity < 1:
                return _availability_result(False, 'Quantity must be at least 1')
            if end_time <= start_time:
                return _availability_result(False, 'End time must be after start time')

            lot_key = getattr(parking_lot_id, 'pk', parking_lot_id)
            try:
                parking_lot = ParkingLot.objects.get(pk=lot_key)
            except ParkingLot.DoesNotExist:
                return _availability_result(False, 'Parking lot not found')

            if not parking_lot.is_active:
                return _availability_result(False, 'Parking lot not available')

            total_capacity = parking_lot.get_capacity(vehicle_type)

            day_of_week = AvailabilityManager.get_day_of_week(start_time)
            if not parking_lot.is_open_on(day_of_week):
                return _availability_result(
                    False, 'Parking lot closed on this day', total_capacity=total_capacity
                )

            overlapping_reservations = Reservation.objects.overlapping(
                parking_lot.pk, start_time, end_time
            ).filter(vehicle_type=vehicle_type).only('vehicle_type', 'start_time', 'end_time')

            occupied_slots = AvailabilityManager.calculate_occupied_slots(
                overlapping_reservations, start_time, end_time, vehicle_type
            )
            available_slots = total_capacity - occupied_slots

            if available_slots >= quantity:
                return _availability_result(
                    True, 'Slots available', available_slots, total_capacity, occupied_slots
                )
            return _availability_result(
                False, 'Insufficient slots available', available_slots, total_capacity, occupied_slots
            )
        except Exception:
            logger.exception(f"Error checking availability for parking lot {parking_lot_id}")
            return _availability_result(False, 'Error checking availability')

    @staticmethod
    def get_hourly_availability(parking_lot_id, day, vehicle_type):
        """
        Hour-by-hour availability of one vehicle type for a calendar day.

        Returns:
            24 dicts {hour, available, occupied, total} for hours 0-23,
            or an empty list if the lot cannot be loaded
        """
        try:
            lot_key = getattr(parking_lot_id, 'pk', parking_lot_id)
            parking_lot = ParkingLot.objects.get(pk=lot_key)
            total_capacity = parking_lot.get_capacity(vehicle_type)

            if isinstance(day, str):
                day = parse_date(day)
            elif isinstance(day, datetime):
                day = timezone.localtime(day).date() if timezone.is_aware(day) else day.date()
            if not isinstance(day, date):
                raise ValueError(f"Invalid date: {day}")

            start_of_day = timezone.make_aware(datetime.combine(day, time.min))
            end_of_day = start_of_day + timedelta(days=1)

            reservations = list(
                Reservation.objects.overlapping(parking_lot.pk, start_of_day, end_of_day)
                .filter(vehicle_type=vehicle_type)
                .only('vehicle_type', 'start_time', 'end_time')
            )

            hourly_availability = []
            for hour in range(24):
                slot_start = start_of_day + timedelta(hours=hour)
                slot_end = slot_start + timedelta(hours=1)
                occupied_slots = AvailabilityManager.calculate_occupied_slots(
                    reservations, slot_start, slot_end, vehicle_type
                )
                hourly_availability.append({
                    'hour': hour,
                    'available': total_capacity - occupied_slots,
                    'occupied': occupied_slots,
                    'total': total_capacity,
                })
            return hourly_availability
        except Exception:
            logger.exception(f"Error getting hourly availability for parking lot {parking_lot_id}")
            return []

    @staticmethod
    def calculate_score(parking_lot, preferences=None):
        """Rank a lot by rating, price and amenities (higher is better)"""
        preferences = preferences or {}
        score = float(parking_lot.rating or 0) * 10

        # Lower hourly price scores higher, up to 30 points before weighting
        price_weight = preferences.get('price_weight', 0.3)
        max_price = 100
        hourly_rate = float(parking_lot.get_hourly_rate(preferences.get('vehicle_type', 'two_wheeler')))
        price_score = max(0, (max_price - hourly_rate) / max_price * 30)
        score += price_score * price_weight

        amenity_score = len(parking_lot.amenities or []) * 2
        score += min(amenity_score, 20)

        return score

    @staticmethod
    def find_optimal_lots(parking_lot_ids, start_time, end_time, vehicle_type, preferences=None):
        """Available lots among `parking_lot_ids`, best score first"""
        preferences = {'vehicle_type': vehicle_type, **(preferences or {})}
        available_lots = []

        for lot_id in parking_lot_ids:
            availability = AvailabilityManager.check_availability(lot_id, start_time, end_time, vehicle_type)
            if not availability['available']:
                continue
            parking_lot = ParkingLot.objects.get(pk=getattr(lot_id, 'pk', lot_id))
            available_lots.append({
                'parking_lot': parking_lot,
                'availability': availability,
                'score': AvailabilityManager.calculate_score(parking_lot, preferences),
            })

        available_lots.sort(key=lambda entry: entry['score'], reverse=True)
        return available_lots
