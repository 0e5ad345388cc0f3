# ==================== UTILS/EXCEPTIONS.PY ====================
from rest_framework.exceptions import APIException
from rest_framework import status


class ParkingUnavailable(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Parking lot has no free slots for the selected time.'
    default_code = 'parking_unavailable'


class ReservationConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Reservation conflicts with an existing reservation.'
    default_code = 'reservation_conflict'

    def __init__(self, detail=None, conflict_type=None, conflicting_id=None):
        payload = {'detail': detail or self.default_detail}
        if conflict_type:
            payload['type'] = conflict_type
        if conflicting_id is not None:
            payload['conflicting_reservation'] = conflicting_id
        super().__init__(payload)
        self.conflict_type = conflict_type
        self.conflicting_id = conflicting_id


class ReservationCheckFailed(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Reservation could not be validated, please try again.'
    default_code = 'reservation_check_failed'


class InvalidStatusTransition(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Reservation cannot move to the requested status.'
    default_code = 'invalid_status_transition'


class CheckInWindowClosed(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Check-in is only allowed close to the reservation start time.'
    default_code = 'check_in_window_closed'
