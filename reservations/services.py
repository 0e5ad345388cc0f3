# ==================== RESERVATIONS/SERVICES.PY ====================
import logging
import math
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from parking.models import ParkingLot
from utils.exceptions import (
    CheckInWindowClosed,
    InvalidStatusTransition,
    ParkingUnavailable,
    ReservationCheckFailed,
    ReservationConflict,
)
from .availability import AvailabilityManager
from .models import Reservation
from .validators import normalize_number_plate, validate_reservation_uniqueness

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


class ReservationService:
    """Reservation creation and lifecycle transitions"""

    @staticmethod
    def calculate_pricing(parking_lot, vehicle_type, start_time, end_time):
        """Base price from the lot's hourly rate over the rounded-up duration, plus taxes"""
        hours = math.ceil((end_time - start_time).total_seconds() / 3600)
        base_price = (Decimal(parking_lot.get_hourly_rate(vehicle_type)) * hours).quantize(CENT)
        taxes = (base_price * Decimal(str(settings.RESERVATION_TAX_RATE))).quantize(CENT, rounding=ROUND_HALF_UP)
        return {
            'base_price': base_price,
            'taxes': taxes,
            'discount': Decimal('0.00'),
            'total_amount': base_price + taxes,
        }

    @staticmethod
    def create_reservation(user, parking_lot_id, vehicle_type, number_plate, start_time, end_time, **extra):
        """
        Validate and store a new confirmed reservation.

        The parking lot row is locked for the whole check-then-insert sequence,
        so concurrent bookings on one lot are serialised and cannot both take
        the last free slot. The lock covers capacity and same-lot duplicates
        only: two concurrent bookings of one vehicle at different lots are
        not serialised, so the cross-lot TIME_OVERLAP check can race.

        Raises:
            NotFound: parking lot does not exist
            ValidationError: invalid time window
            ReservationConflict: vehicle or user already holds an overlapping reservation
            ReservationCheckFailed: the duplicate check itself failed
            ParkingUnavailable: no capacity left for the vehicle type
        """
        if end_time <= start_time:
            raise ValidationError({'end_time': 'End time must be after start time'})
        if start_time < timezone.now():
            raise ValidationError({'start_time': 'Start time must be in the future'})

        number_plate = normalize_number_plate(number_plate)

        try:
            with transaction.atomic():
                try:
                    parking_lot = ParkingLot.objects.select_for_update().get(pk=parking_lot_id)
                except ParkingLot.DoesNotExist:
                    raise NotFound('Parking lot not found')

                uniqueness = validate_reservation_uniqueness(
                    number_plate, start_time, end_time, parking_lot.pk, user.pk
                )
                if not uniqueness['is_valid']:
                    if 'type' not in uniqueness:
                        raise ReservationCheckFailed(uniqueness['message'])
                    raise ReservationConflict(
                        uniqueness['message'],
                        conflict_type=uniqueness['type'],
                        conflicting_id=uniqueness['conflicting_reservation'].pk,
                    )

                availability = AvailabilityManager.check_availability(
                    parking_lot.pk, start_time, end_time, vehicle_type
                )
                if not availability['available']:
                    raise ParkingUnavailable(availability['message'])

                pricing = ReservationService.calculate_pricing(parking_lot, vehicle_type, start_time, end_time)
                reservation = Reservation.objects.create(
                    user=user,
                    parking_lot=parking_lot,
                    vehicle_type=vehicle_type,
                    number_plate=number_plate,
                    start_time=start_time,
                    end_time=end_time,
                    status='confirmed',
                    **pricing,
                    **extra
                )
        except IntegrityError:
            logger.warning(f"Duplicate reservation hash for {number_plate} at parking lot {parking_lot_id}")
            raise ReservationConflict(
                f'Duplicate reservation detected for vehicle {number_plate}',
                conflict_type='EXACT_DUPLICATE',
            )

        logger.info(f"Reservation {reservation.pk} created for {number_plate} at parking lot {parking_lot.pk}")
        return reservation

    @staticmethod
    def cancel_reservation(reservation, reason=''):
        """Cancel a pending/confirmed reservation more than an hour before it starts"""
        if not reservation.can_cancel:
            raise InvalidStatusTransition('Cannot cancel reservation in current status')

        now = timezone.now()
        reservation.transition_to('cancelled')
        reservation.cancellation_reason = reason or 'User cancelled'
        reservation.cancelled_at = now
        reservation.refund_amount = reservation.calculate_refund(now)
        reservation.save()

        logger.info(f"Reservation {reservation.pk} cancelled, refund {reservation.refund_amount}")
        return reservation

    @staticmethod
    def check_in(reservation, method='manual', now=None):
        """Mark a confirmed reservation active within the check-in window around its start"""
        now = now or timezone.now()
        if reservation.status != 'confirmed':
            raise InvalidStatusTransition('Can only check-in to confirmed reservations')

        window = timedelta(minutes=settings.CHECK_IN_WINDOW_MINUTES)
        if abs(now - reservation.start_time) > window:
            raise CheckInWindowClosed()

        reservation.transition_to('active')
        reservation.check_in_time = now
        reservation.check_in_method = method
        reservation.save()

        logger.info(f"Reservation {reservation.pk} checked in via {method}")
        return reservation

    @staticmethod
    def check_out(reservation, method='manual', now=None):
        """Complete an active reservation, charging every started hour past its end"""
        now = now or timezone.now()
        if reservation.status != 'active':
            raise InvalidStatusTransition('Can only check-out from active reservations')

        overstay_charges = Decimal('0.00')
        if now > reservation.end_time:
            overstay_hours = math.ceil((now - reservation.end_time).total_seconds() / 3600)
            hourly_rate = Decimal(reservation.parking_lot.get_hourly_rate(reservation.vehicle_type))
            overstay_charges = (hourly_rate * overstay_hours).quantize(CENT)

        reservation.transition_to('completed')
        reservation.check_out_time = now
        reservation.check_out_method = method
        reservation.overstay_charges = overstay_charges
        reservation.save()

        logger.info(f"Reservation {reservation.pk} checked out, overstay charges {overstay_charges}")
        return reservation

    @staticmethod
    def verify_qr_code(vendor, qr_code):
        """Look up a reservation by QR code on one of the vendor's lots"""
        try:
            reservation = Reservation.objects.select_related('parking_lot', 'user').get(qr_code=qr_code)
        except Reservation.DoesNotExist:
            raise NotFound('Reservation not found for this QR code')

        if reservation.parking_lot.vendor_id != vendor.pk:
            raise PermissionDenied('This reservation belongs to another vendor')
        return reservation
