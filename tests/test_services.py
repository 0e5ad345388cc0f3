from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from reservations.models import Reservation
from reservations.services import ReservationService
from utils.exceptions import (
    CheckInWindowClosed,
    InvalidStatusTransition,
    ParkingUnavailable,
    ReservationCheckFailed,
    ReservationConflict,
)
from .helpers import MONDAY, at, make_lot, make_reservation, make_user


class CreateReservationTestCase(TestCase):
    def setUp(self):
        self.vendor = make_user('vendor1', 'vendor')
        self.driver = make_user('driver1')
        self.other_driver = make_user('driver2')
        self.lot = make_lot(self.vendor, capacity_four_wheeler=2)
        self.start = at(MONDAY, 10)
        self.end = at(MONDAY, 12)

    def _create(self, user=None, number_plate='MH12AB1234', start=None, end=None, **extra):
        return ReservationService.create_reservation(
            user or self.driver, self.lot.pk, 'four_wheeler', number_plate,
            start or self.start, end or self.end, **extra
        )

    def test_creates_confirmed_reservation(self):
        reservation = self._create(number_plate='mh12 ab1234', vehicle_model='Swift')

        self.assertEqual(reservation.status, 'confirmed')
        self.assertEqual(reservation.number_plate, 'MH12AB1234')
        self.assertEqual(reservation.vehicle_model, 'Swift')
        self.assertEqual(reservation.duration_hours, 2)
        self.assertEqual(reservation.base_price, Decimal('40.00'))
        self.assertEqual(reservation.taxes, Decimal('7.20'))
        self.assertEqual(reservation.total_amount, Decimal('47.20'))
        self.assertTrue(reservation.qr_code.startswith('PRS_'))
        self.assertEqual(len(reservation.vehicle_time_hash), 64)

    def test_partial_hours_are_rounded_up(self):
        reservation = self._create(end=at(MONDAY, 11, 15))
        self.assertEqual(reservation.duration_hours, 2)
        self.assertEqual(reservation.base_price, Decimal('40.00'))

    def test_duplicate_vehicle_rejected(self):
        first = self._create()
        with self.assertRaises(ReservationConflict) as context:
            self._create(user=self.other_driver)
        self.assertEqual(context.exception.conflict_type, 'EXACT_DUPLICATE')
        self.assertEqual(context.exception.conflicting_id, first.pk)

    def test_vehicle_overlap_rejected(self):
        self._create()
        with self.assertRaises(ReservationConflict) as context:
            self._create(start=at(MONDAY, 11), end=at(MONDAY, 13))
        self.assertEqual(context.exception.conflict_type, 'TIME_OVERLAP')

    def test_full_lot_rejected(self):
        self._create(number_plate='MH12AB0001')
        self._create(user=self.other_driver, number_plate='MH12AB0002')
        third_driver = make_user('driver3')

        with self.assertRaises(ParkingUnavailable):
            self._create(user=third_driver, number_plate='MH12AB0003')
        self.assertEqual(Reservation.objects.count(), 2)

    def test_past_start_rejected(self):
        with self.assertRaises(ValidationError):
            self._create(start=at(MONDAY, 10) - timedelta(days=3650), end=at(MONDAY, 12) - timedelta(days=3650))

    def test_inverted_window_rejected(self):
        with self.assertRaises(ValidationError):
            self._create(start=self.end, end=self.start)

    def test_missing_lot(self):
        with self.assertRaises(NotFound):
            ReservationService.create_reservation(
                self.driver, 99999, 'four_wheeler', 'MH12AB1234', self.start, self.end
            )

    def test_unique_hash_constraint_backs_up_duplicate_check(self):
        self._create()
        passing = {'is_valid': True, 'message': 'Reservation is unique and valid'}
        with mock.patch('reservations.services.validate_reservation_uniqueness', return_value=passing):
            with self.assertRaises(ReservationConflict) as context:
                self._create(user=self.other_driver)
        self.assertEqual(context.exception.conflict_type, 'EXACT_DUPLICATE')
        self.assertEqual(Reservation.objects.count(), 1)

    def test_failed_duplicate_check_rejects_booking(self):
        failed = {'is_valid': False, 'message': 'Error validating reservation'}
        with mock.patch('reservations.services.validate_reservation_uniqueness', return_value=failed):
            with self.assertRaises(ReservationCheckFailed):
                self._create()
        self.assertEqual(Reservation.objects.count(), 0)


class ReservationLifecycleTestCase(TestCase):
    def setUp(self):
        self.vendor = make_user('vendor1', 'vendor')
        self.other_vendor = make_user('vendor2', 'vendor')
        self.driver = make_user('driver1')
        self.lot = make_lot(self.vendor)
        self.start = at(MONDAY, 10)
        self.end = at(MONDAY, 12)
        self.reservation = make_reservation(
            self.driver, self.lot, 'MH12AB1234', self.start, self.end, total_amount=Decimal('47.20')
        )

    def test_cancel_well_ahead_refunds_in_full(self):
        reservation = ReservationService.cancel_reservation(self.reservation, 'Plans changed')
        self.assertEqual(reservation.status, 'cancelled')
        self.assertEqual(reservation.cancellation_reason, 'Plans changed')
        self.assertIsNotNone(reservation.cancelled_at)
        self.assertEqual(reservation.refund_amount, Decimal('47.20'))

    def test_refund_tiers(self):
        self.assertEqual(self.reservation.calculate_refund(self.start - timedelta(hours=13)), Decimal('35.40'))
        self.assertEqual(self.reservation.calculate_refund(self.start - timedelta(hours=3)), Decimal('23.60'))
        self.assertEqual(self.reservation.calculate_refund(self.start - timedelta(hours=1)), Decimal('0.00'))

    def test_cancelled_slot_can_be_booked_again(self):
        ReservationService.cancel_reservation(self.reservation)
        reservation = ReservationService.create_reservation(
            self.driver, self.lot.pk, 'four_wheeler', 'MH12AB1234', self.start, self.end
        )
        self.assertEqual(reservation.status, 'confirmed')

    def test_cannot_cancel_twice(self):
        ReservationService.cancel_reservation(self.reservation)
        with self.assertRaises(InvalidStatusTransition):
            ReservationService.cancel_reservation(self.reservation)

    def test_check_in_and_out(self):
        ReservationService.check_in(self.reservation, 'qr_code', now=self.start + timedelta(minutes=5))
        self.assertEqual(self.reservation.status, 'active')
        self.assertEqual(self.reservation.check_in_method, 'qr_code')

        ReservationService.check_out(self.reservation, now=self.end - timedelta(minutes=10))
        self.reservation.refresh_from_db()
        self.assertEqual(self.reservation.status, 'completed')
        self.assertEqual(self.reservation.overstay_charges, Decimal('0.00'))

    def test_overstay_charged_per_started_hour(self):
        ReservationService.check_in(self.reservation, now=self.start)
        ReservationService.check_out(self.reservation, now=self.end + timedelta(minutes=90))
        self.assertEqual(self.reservation.overstay_charges, Decimal('40.00'))

    def test_check_in_outside_window(self):
        with self.assertRaises(CheckInWindowClosed):
            ReservationService.check_in(self.reservation, now=self.start - timedelta(hours=2))
        self.assertEqual(self.reservation.status, 'confirmed')

    def test_check_out_requires_check_in(self):
        with self.assertRaises(InvalidStatusTransition):
            ReservationService.check_out(self.reservation, now=self.end)

    def test_terminal_status_is_final(self):
        self.reservation.status = 'completed'
        with self.assertRaises(InvalidStatusTransition):
            self.reservation.transition_to('active')

    def test_verify_qr_code(self):
        found = ReservationService.verify_qr_code(self.vendor, self.reservation.qr_code)
        self.assertEqual(found, self.reservation)

        with self.assertRaises(PermissionDenied):
            ReservationService.verify_qr_code(self.other_vendor, self.reservation.qr_code)
        with self.assertRaises(NotFound):
            ReservationService.verify_qr_code(self.vendor, 'PRS_missing')
