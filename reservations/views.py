# ============================= RESERVATION VIEWS =============================
import logging

from django.db.models import Q
from rest_framework import viewsets, status, permissions, filters
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from utils.permissions import IsReservationOwnerOrLotVendor, IsVendor
from .models import Reservation
from .serializers import (
    CancelSerializer,
    CheckMethodSerializer,
    ConflictQuerySerializer,
    QRCodeSerializer,
    ReservationCreateSerializer,
    ReservationDetailSerializer,
    ReservationListSerializer,
    UniquenessQuerySerializer,
)
from .services import ReservationService
from .validators import get_conflicting_reservations, validate_reservation_uniqueness

logger = logging.getLogger(__name__)


class ReservationViewSet(viewsets.ModelViewSet):
    """Reservation creation, lifecycle and conflict lookups"""
    http_method_names = ['get', 'post', 'head', 'options']
    filter_backends = [
        DjangoFilterBackend,  # For filtering
        filters.SearchFilter,  # For searching
        filters.OrderingFilter  # For ordering
    ]
    filterset_fields = ['status', 'vehicle_type', 'parking_lot']
    search_fields = ['number_plate', 'parking_lot__name', 'parking_lot__city']
    ordering_fields = ['created_at', 'start_time', 'total_amount']
    ordering = ['-created_at']

    def get_serializer_class(self):
        if self.action == 'create':
            return ReservationCreateSerializer
        elif self.action in ['list', 'conflicts']:
            return ReservationListSerializer
        return ReservationDetailSerializer

    def get_permissions(self):
        if self.action == 'verify_qr':
            permission_classes = [permissions.IsAuthenticated, IsVendor]
        else:
            permission_classes = [permissions.IsAuthenticated, IsReservationOwnerOrLotVendor]
        return [permission() for permission in permission_classes]

    def get_queryset(self):
        user = self.request.user
        queryset = Reservation.objects.select_related('parking_lot', 'parking_lot__vendor', 'user')
        # Vendors also see reservations on their own lots
        if user.user_type == 'vendor':
            return queryset.filter(Q(user=user) | Q(parking_lot__vendor=user))
        return queryset.filter(user=user)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        reservation = ReservationService.create_reservation(
            request.user,
            data.pop('parking_lot'),
            data.pop('vehicle_type'),
            data.pop('number_plate'),
            data.pop('start_time'),
            data.pop('end_time'),
            **data
        )
        return Response(ReservationDetailSerializer(reservation).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Cancel a reservation

        Body: { "reason": "Plans changed" }
        """
        reservation = self.get_object()
        if request.user != reservation.user:
            raise PermissionDenied()

        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reservation = ReservationService.cancel_reservation(
            reservation, serializer.validated_data.get('reason', '')
        )
        return Response({
            'message': 'Reservation cancelled successfully',
            'refund_amount': reservation.refund_amount,
            'reservation': ReservationDetailSerializer(reservation).data,
        })

    @action(detail=True, methods=['post'])
    def check_in(self, request, pk=None):
        """Check in a confirmed reservation

        Body: { "method": "qr_code|manual|auto" }
        """
        reservation = self.get_object()
        serializer = CheckMethodSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reservation = ReservationService.check_in(reservation, serializer.validated_data['method'])
        return Response(ReservationDetailSerializer(reservation).data)

    @action(detail=True, methods=['post'])
    def check_out(self, request, pk=None):
        """Check out an active reservation"""
        reservation = self.get_object()
        serializer = CheckMethodSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reservation = ReservationService.check_out(reservation, serializer.validated_data['method'])
        return Response({
            'overstay_charges': reservation.overstay_charges,
            'reservation': ReservationDetailSerializer(reservation).data,
        })

    @action(detail=False, methods=['get'])
    def conflicts(self, request):
        """Existing reservations of a vehicle that overlap a time window

        Query params: number_plate, start_time, end_time, exclude_id
        """
        query = ConflictQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        conflicting = get_conflicting_reservations(
            params['number_plate'], params['start_time'], params['end_time'], params.get('exclude_id')
        ).filter(user=request.user)
        serializer = self.get_serializer(conflicting, many=True)
        return Response({'count': len(serializer.data), 'conflicts': serializer.data})

    @action(detail=False, methods=['post'])
    def check_uniqueness(self, request):
        """Dry-run the duplicate checks for a booking without creating it

        Body: { "number_plate", "start_time", "end_time", "parking_lot", "exclude_id" }
        """
        query = UniquenessQuerySerializer(data=request.data)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        result = validate_reservation_uniqueness(
            params['number_plate'],
            params['start_time'],
            params['end_time'],
            params['parking_lot'],
            request.user.pk,
            exclude_id=params.get('exclude_id'),
        )
        conflicting = result.get('conflicting_reservation')
        return Response({
            'is_valid': result['is_valid'],
            'type': result.get('type'),
            'message': result['message'],
            'conflicting_reservation': conflicting.pk if conflicting else None,
        })

    @action(detail=False, methods=['post'])
    def verify_qr(self, request):
        """Look up a reservation from its QR code at the vendor's gate

        Body: { "qr_code": "PRS_..." }
        """
        serializer = QRCodeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        reservation = ReservationService.verify_qr_code(request.user, serializer.validated_data['qr_code'])
        logger.info(f"QR code verified for reservation {reservation.pk} by vendor {request.user.username}")
        return Response(ReservationDetailSerializer(reservation).data)
