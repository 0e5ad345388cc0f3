from datetime import timedelta
from unittest import mock

from django.test import SimpleTestCase, TestCase

from parking.models import default_operating_hours
from reservations.availability import AvailabilityManager
from .helpers import MONDAY, SUNDAY, at, make_lot, make_reservation, make_user


class OverlapTestCase(SimpleTestCase):
    def test_partial_overlap_is_symmetric(self):
        self.assertTrue(AvailabilityManager.overlaps(0, 10, 5, 15))
        self.assertTrue(AvailabilityManager.overlaps(5, 15, 0, 10))

    def test_containment_overlaps(self):
        self.assertTrue(AvailabilityManager.overlaps(0, 20, 5, 10))
        self.assertTrue(AvailabilityManager.overlaps(5, 10, 0, 20))

    def test_touching_intervals_do_not_overlap(self):
        self.assertFalse(AvailabilityManager.overlaps(0, 10, 10, 20))
        self.assertFalse(AvailabilityManager.overlaps(10, 20, 0, 10))

    def test_disjoint_intervals(self):
        self.assertFalse(AvailabilityManager.overlaps(0, 5, 6, 10))

    def test_datetimes(self):
        self.assertTrue(AvailabilityManager.overlaps(
            at(MONDAY, 10), at(MONDAY, 12), at(MONDAY, 11), at(MONDAY, 13)
        ))
        self.assertFalse(AvailabilityManager.overlaps(
            at(MONDAY, 10), at(MONDAY, 12), at(MONDAY, 12), at(MONDAY, 13)
        ))


class OccupiedSlotsTestCase(SimpleTestCase):
    def test_peak_concurrency(self):
        intervals = [(0, 10), (5, 15), (12, 20)]
        self.assertEqual(AvailabilityManager.calculate_occupied_slots(intervals, 0, 20), 2)

    def test_empty_input(self):
        self.assertEqual(AvailabilityManager.calculate_occupied_slots([], 0, 20), 0)

    def test_back_to_back_intervals_share_a_slot(self):
        intervals = [(0, 5), (5, 10), (10, 15)]
        self.assertEqual(AvailabilityManager.calculate_occupied_slots(intervals, 0, 20), 1)

    def test_intervals_outside_window_are_ignored(self):
        intervals = [(0, 5), (3, 8), (20, 30)]
        self.assertEqual(AvailabilityManager.calculate_occupied_slots(intervals, 5, 20), 1)

    def test_nested_intervals(self):
        intervals = [(0, 20), (2, 18), (4, 16), (6, 8)]
        self.assertEqual(AvailabilityManager.calculate_occupied_slots(intervals, 0, 20), 4)

    def test_day_of_week(self):
        self.assertEqual(AvailabilityManager.get_day_of_week(SUNDAY), 'sunday')
        self.assertEqual(AvailabilityManager.get_day_of_week(at(MONDAY, 23, 59)), 'monday')


class CheckAvailabilityTestCase(TestCase):
    def setUp(self):
        self.vendor = make_user('vendor1', 'vendor')
        self.driver = make_user('driver1')
        self.lot = make_lot(self.vendor, capacity_four_wheeler=5)
        self.start = at(MONDAY, 10)
        self.end = at(MONDAY, 12)

    def _fill(self, count, start=None, end=None, **extra):
        for index in range(count):
            make_reservation(
                self.driver, self.lot, f'MH12AB{1000 + index}',
                start or self.start, end or self.end, **extra
            )

    def test_empty_lot_is_available(self):
        result = AvailabilityManager.check_availability(self.lot.pk, self.start, self.end, 'four_wheeler')
        self.assertEqual(result, {
            'available': True,
            'available_slots': 5,
            'total_capacity': 5,
            'occupied_slots': 0,
            'message': 'Slots available',
        })

    def test_full_lot_is_unavailable(self):
        self._fill(5)
        result = AvailabilityManager.check_availability(self.lot.pk, self.start, self.end, 'four_wheeler')
        self.assertFalse(result['available'])
        self.assertEqual(result['available_slots'], 0)
        self.assertEqual(result['occupied_slots'], 5)
        self.assertEqual(result['message'], 'Insufficient slots available')

    def test_last_slot_is_available(self):
        self._fill(4)
        result = AvailabilityManager.check_availability(self.lot.pk, self.start, self.end, 'four_wheeler')
        self.assertTrue(result['available'])
        self.assertEqual(result['available_slots'], 1)

    def test_quantity_larger_than_free_slots(self):
        self._fill(4)
        result = AvailabilityManager.check_availability(
            self.lot.pk, self.start, self.end, 'four_wheeler', quantity=2
        )
        self.assertFalse(result['available'])
        self.assertEqual(result['available_slots'], 1)

    def test_quantity_must_be_positive(self):
        result = AvailabilityManager.check_availability(
            self.lot.pk, self.start, self.end, 'four_wheeler', quantity=0
        )
        self.assertFalse(result['available'])

    def test_sequential_reservations_count_once(self):
        self.lot.capacity_four_wheeler = 1
        self.lot.save()
        make_reservation(self.driver, self.lot, 'MH12AB0001', at(MONDAY, 8), at(MONDAY, 11))
        make_reservation(self.driver, self.lot, 'MH12AB0002', at(MONDAY, 11), at(MONDAY, 14))

        result = AvailabilityManager.check_availability(self.lot.pk, self.start, self.end, 'four_wheeler')
        self.assertEqual(result['occupied_slots'], 1)
        self.assertFalse(result['available'])

        result = AvailabilityManager.check_availability(
            self.lot.pk, at(MONDAY, 14), at(MONDAY, 16), 'four_wheeler'
        )
        self.assertTrue(result['available'])

    def test_terminal_reservations_free_their_slots(self):
        self._fill(3, status='cancelled')
        make_reservation(self.driver, self.lot, 'MH12XY0001', self.start, self.end, status='completed')
        make_reservation(self.driver, self.lot, 'MH12XY0002', self.start, self.end, status='no_show')

        result = AvailabilityManager.check_availability(self.lot.pk, self.start, self.end, 'four_wheeler')
        self.assertEqual(result['available_slots'], 5)

    def test_vehicle_types_have_separate_pools(self):
        self._fill(5)
        result = AvailabilityManager.check_availability(self.lot.pk, self.start, self.end, 'two_wheeler')
        self.assertTrue(result['available'])
        self.assertEqual(result['available_slots'], 10)

    def test_zero_capacity_vehicle_type(self):
        result = AvailabilityManager.check_availability(self.lot.pk, self.start, self.end, 'heavy_vehicle')
        self.assertFalse(result['available'])
        self.assertEqual(result['total_capacity'], 0)

    def test_unsupported_vehicle_type(self):
        result = AvailabilityManager.check_availability(self.lot.pk, self.start, self.end, 'bus')
        self.assertFalse(result['available'])

    def test_closed_day(self):
        hours = default_operating_hours()
        hours['sunday']['is_open'] = False
        self.lot.operating_hours = hours
        self.lot.save()

        result = AvailabilityManager.check_availability(
            self.lot.pk, at(SUNDAY, 10), at(SUNDAY, 12), 'four_wheeler'
        )
        self.assertFalse(result['available'])
        self.assertEqual(result['message'], 'Parking lot closed on this day')
        self.assertEqual(result['total_capacity'], 5)

        result = AvailabilityManager.check_availability(self.lot.pk, self.start, self.end, 'four_wheeler')
        self.assertTrue(result['available'])

    def test_missing_lot(self):
        result = AvailabilityManager.check_availability(99999, self.start, self.end, 'four_wheeler')
        self.assertFalse(result['available'])
        self.assertEqual(result['message'], 'Parking lot not found')

    def test_inactive_lot(self):
        self.lot.is_active = False
        self.lot.save()
        result = AvailabilityManager.check_availability(self.lot.pk, self.start, self.end, 'four_wheeler')
        self.assertFalse(result['available'])
        self.assertEqual(result['message'], 'Parking lot not available')

    def test_invalid_window(self):
        result = AvailabilityManager.check_availability(self.lot.pk, self.end, self.start, 'four_wheeler')
        self.assertFalse(result['available'])

    def test_errors_report_unavailable(self):
        with mock.patch.object(
            AvailabilityManager, 'calculate_occupied_slots', side_effect=RuntimeError('database went away')
        ):
            result = AvailabilityManager.check_availability(
                self.lot.pk, self.start, self.end, 'four_wheeler'
            )
        self.assertFalse(result['available'])
        self.assertEqual(result['available_slots'], 0)
        self.assertEqual(result['message'], 'Error checking availability')


class HourlyAvailabilityTestCase(TestCase):
    def setUp(self):
        self.vendor = make_user('vendor1', 'vendor')
        self.driver = make_user('driver1')
        self.lot = make_lot(self.vendor, capacity_four_wheeler=3)

    def test_covers_every_hour(self):
        hourly = AvailabilityManager.get_hourly_availability(self.lot.pk, MONDAY.date(), 'four_wheeler')
        self.assertEqual([entry['hour'] for entry in hourly], list(range(24)))
        self.assertTrue(all(entry['available'] == 3 and entry['total'] == 3 for entry in hourly))

    def test_reflects_reservations(self):
        make_reservation(self.driver, self.lot, 'MH12AB0001', at(MONDAY, 10), at(MONDAY, 12))
        make_reservation(self.driver, self.lot, 'MH12AB0002', at(MONDAY, 11, 30), at(MONDAY, 13))
        # Runs over from the previous evening
        make_reservation(
            self.driver, self.lot, 'MH12AB0003', at(MONDAY, 22) - timedelta(days=1), at(MONDAY, 1)
        )

        hourly = AvailabilityManager.get_hourly_availability(self.lot.pk, '2030-06-03', 'four_wheeler')
        occupied = {entry['hour']: entry['occupied'] for entry in hourly}
        self.assertEqual(occupied[0], 1)
        self.assertEqual(occupied[1], 0)
        self.assertEqual(occupied[10], 1)
        self.assertEqual(occupied[11], 2)
        self.assertEqual(occupied[12], 1)
        self.assertEqual(occupied[13], 0)
        self.assertEqual(hourly[11]['available'], 1)

    def test_missing_lot_returns_empty(self):
        self.assertEqual(AvailabilityManager.get_hourly_availability(99999, MONDAY.date(), 'four_wheeler'), [])


class FindOptimalLotsTestCase(TestCase):
    def setUp(self):
        self.vendor = make_user('vendor1', 'vendor')
        self.driver = make_user('driver1')
        self.full_lot = make_lot(self.vendor, name='Full Lot', capacity_four_wheeler=1)
        self.cheap_lot = make_lot(self.vendor, name='Cheap Lot', hourly_rate_four_wheeler=10)
        self.premium_lot = make_lot(
            self.vendor, name='Premium Lot', rating=4.5, amenities=['ev_charging', 'covered_parking']
        )
        make_reservation(self.driver, self.full_lot, 'MH12AB0001', at(MONDAY, 9), at(MONDAY, 18))

    def test_only_available_lots_ranked_by_score(self):
        results = AvailabilityManager.find_optimal_lots(
            [self.full_lot.pk, self.cheap_lot.pk, self.premium_lot.pk],
            at(MONDAY, 10), at(MONDAY, 12), 'four_wheeler'
        )
        names = [entry['parking_lot'].name for entry in results]
        self.assertEqual(names, ['Premium Lot', 'Cheap Lot'])
        self.assertTrue(all(entry['availability']['available'] for entry in results))
