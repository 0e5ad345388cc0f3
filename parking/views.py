# ============================= PARKING LOT VIEWS =============================
import logging
from datetime import timedelta

from django.db.models import Count, Q, Sum
from django.utils import timezone
from geopy.distance import geodesic
from rest_framework import viewsets, status, permissions, filters
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from reservations.availability import AvailabilityManager
from reservations.models import Reservation
from utils.permissions import IsLotVendor, IsVendor
from .filters import ParkingLotFilter
from .models import ParkingLot, VEHICLE_TYPES
from .serializers import (
    AvailabilityQuerySerializer,
    HourlyAvailabilityQuerySerializer,
    LotSearchQuerySerializer,
    ParkingLotCreateUpdateSerializer,
    ParkingLotDetailSerializer,
    ParkingLotListSerializer,
)

logger = logging.getLogger(__name__)

PUBLIC_ACTIONS = ['list', 'retrieve', 'check_availability', 'hourly_availability', 'nearby', 'search']


def _lots_within_radius(queryset, latitude, longitude, radius_km):
    """Lots within radius_km of a point, nearest first, annotated with distance_km"""
    origin = (latitude, longitude)
    nearby = []
    for lot in queryset:
        lot.distance_km = geodesic(origin, (lot.latitude, lot.longitude)).km
        if lot.distance_km <= radius_km:
            nearby.append(lot)
    nearby.sort(key=lambda lot: lot.distance_km)
    return nearby


class ParkingLotViewSet(viewsets.ModelViewSet):
    """Parking lot listing, vendor management and availability"""
    filter_backends = [
        DjangoFilterBackend,  # For custom filters
        filters.SearchFilter,  # For search
        filters.OrderingFilter  # For sorting
    ]
    filterset_class = ParkingLotFilter
    search_fields = ['name', 'street', 'city', 'state', 'description']
    ordering_fields = ['created_at', 'rating', 'hourly_rate_two_wheeler', 'hourly_rate_four_wheeler']
    ordering = ['-created_at']

    def get_queryset(self):
        queryset = ParkingLot.objects.select_related('vendor')
        if self.action in ['list', 'nearby', 'search']:
            return queryset.filter(is_active=True)
        return queryset

    def get_serializer_class(self):
        if self.action in ['list', 'nearby', 'my_lots']:
            return ParkingLotListSerializer
        elif self.action in ['create', 'update', 'partial_update']:
            return ParkingLotCreateUpdateSerializer
        return ParkingLotDetailSerializer

    def get_permissions(self):
        if self.action in PUBLIC_ACTIONS:
            permission_classes = [permissions.AllowAny]
        elif self.action in ['create', 'my_lots']:
            permission_classes = [permissions.IsAuthenticated, IsVendor]
        else:
            permission_classes = [permissions.IsAuthenticated, IsVendor, IsLotVendor]
        return [permission() for permission in permission_classes]

    def retrieve(self, request, *args, **kwargs):
        """Lot details with today's hourly availability"""
        parking_lot = self.get_object()
        vehicle_type = request.query_params.get('vehicle_type', 'two_wheeler')
        if vehicle_type not in VEHICLE_TYPES:
            raise ValidationError({'vehicle_type': f'Unsupported vehicle type: {vehicle_type}'})

        return Response({
            'parking_lot': self.get_serializer(parking_lot).data,
            'today_availability': AvailabilityManager.get_hourly_availability(
                parking_lot.pk, timezone.localdate(), vehicle_type
            ),
        })

    def perform_create(self, serializer):
        parking_lot = serializer.save()
        logger.info(f"Parking lot {parking_lot.pk} created by vendor {self.request.user.username}")

    def perform_destroy(self, instance):
        upcoming = Reservation.objects.non_terminal().filter(
            parking_lot=instance, end_time__gt=timezone.now()
        ).exists()
        if upcoming:
            raise ValidationError('Parking lot has upcoming reservations and cannot be deleted')
        logger.info(f"Parking lot {instance.pk} deleted by vendor {self.request.user.username}")
        instance.delete()

    @action(detail=False, methods=['get'])
    def my_lots(self, request):
        """Get all parking lots owned by the current vendor"""
        lots = ParkingLot.objects.filter(vendor=request.user)
        serializer = self.get_serializer(lots, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['post'])
    def check_availability(self, request, pk=None):
        """Check free slots for a time window

        Body: { "start_time": ISO, "end_time": ISO, "vehicle_type": "four_wheeler", "quantity": 1 }
        """
        parking_lot = self.get_object()
        query = AvailabilityQuerySerializer(data=request.data)
        query.is_valid(raise_exception=True)

        availability = AvailabilityManager.check_availability(
            parking_lot.pk,
            query.validated_data['start_time'],
            query.validated_data['end_time'],
            query.validated_data['vehicle_type'],
            query.validated_data['quantity'],
        )
        return Response(availability)

    @action(detail=True, methods=['get'])
    def hourly_availability(self, request, pk=None):
        """Hour-by-hour availability for a day

        Query params: date (2025-10-27), vehicle_type
        """
        parking_lot = self.get_object()
        query = HourlyAvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        return Response(AvailabilityManager.get_hourly_availability(
            parking_lot.pk, query.validated_data['date'], query.validated_data['vehicle_type']
        ))

    @action(detail=False, methods=['get'])
    def nearby(self, request):
        """Search parking lots near a location

        Query params: lat, lng, radius (in km)
        Example: /api/v1/parking-lots/nearby/?lat=28.6139&lng=77.2090&radius=5
        """
        try:
            latitude = float(request.query_params.get('lat'))
            longitude = float(request.query_params.get('lng'))
            radius = float(request.query_params.get('radius', 5))  # Default 5km
        except (TypeError, ValueError):
            return Response(
                {'error': 'Invalid latitude, longitude, or radius'},
                status=status.HTTP_400_BAD_REQUEST
            )

        lots = _lots_within_radius(self.filter_queryset(self.get_queryset()), latitude, longitude, radius)
        serializer = self.get_serializer(lots, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def search(self, request):
        """Available lots for a time window, best match first

        Query params: start_time, end_time, vehicle_type, lat, lng, radius, city
        """
        query = LotSearchQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        candidates = self.get_queryset()
        if params.get('city'):
            candidates = candidates.filter(city__iexact=params['city'])
        if 'lat' in params:
            candidates = _lots_within_radius(candidates, params['lat'], params['lng'], params['radius'])
        distances = {lot.pk: getattr(lot, 'distance_km', None) for lot in candidates}

        results = AvailabilityManager.find_optimal_lots(
            [lot.pk for lot in candidates],
            params['start_time'],
            params['end_time'],
            params['vehicle_type'],
        )

        response = []
        for entry in results:
            parking_lot = entry['parking_lot']
            parking_lot.distance_km = distances.get(parking_lot.pk)
            response.append({
                'parking_lot': ParkingLotListSerializer(parking_lot).data,
                'availability': entry['availability'],
                'score': round(entry['score'], 2),
            })
        return Response(response)

    @action(detail=True, methods=['get'])
    def stats(self, request, pk=None):
        """Get parking lot statistics (vendor only)
        Returns: reservation counts by status, revenue, current occupancy per vehicle type
        """
        parking_lot = self.get_object()
        if request.user != parking_lot.vendor:
            raise PermissionDenied()
        reservations = parking_lot.reservations.all()

        counts = reservations.aggregate(
            total=Count('id'),
            pending=Count('id', filter=Q(status='pending')),
            confirmed=Count('id', filter=Q(status='confirmed')),
            active=Count('id', filter=Q(status='active')),
            completed=Count('id', filter=Q(status='completed')),
            cancelled=Count('id', filter=Q(status='cancelled')),
            no_show=Count('id', filter=Q(status='no_show')),
        )
        revenue = reservations.filter(
            status__in=['confirmed', 'active', 'completed']
        ).aggregate(total=Sum('total_amount'), overstay=Sum('overstay_charges'))

        now = timezone.now()
        current = list(Reservation.objects.overlapping(parking_lot.pk, now, now + timedelta(minutes=1)))
        occupancy = {}
        for vehicle_type in VEHICLE_TYPES:
            capacity = parking_lot.get_capacity(vehicle_type)
            occupied = AvailabilityManager.calculate_occupied_slots(
                current, now, now + timedelta(minutes=1), vehicle_type
            )
            occupancy[vehicle_type] = {
                'capacity': capacity,
                'occupied': occupied,
                'occupancy_rate': round(occupied / capacity * 100, 2) if capacity > 0 else 0,
            }

        return Response({
            'reservations': counts,
            'total_revenue': revenue['total'] or 0,
            'overstay_revenue': revenue['overstay'] or 0,
            'average_rating': parking_lot.rating,
            'current_occupancy': occupancy,
        })
