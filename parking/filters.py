# ============================= PARKING/FILTERS.PY =============================
import django_filters
from .models import ParkingLot


class ParkingLotFilter(django_filters.FilterSet):
    """Advanced filtering for parking lots"""

    rating_min = django_filters.NumberFilter(
        field_name='rating',
        lookup_expr='gte',
        label='Minimum Rating'
    )
    max_price_two_wheeler = django_filters.NumberFilter(
        field_name='hourly_rate_two_wheeler',
        lookup_expr='lte',
        label='Maximum Hourly Price (Two Wheeler)'
    )
    max_price_four_wheeler = django_filters.NumberFilter(
        field_name='hourly_rate_four_wheeler',
        lookup_expr='lte',
        label='Maximum Hourly Price (Four Wheeler)'
    )
    max_price_heavy_vehicle = django_filters.NumberFilter(
        field_name='hourly_rate_heavy_vehicle',
        lookup_expr='lte',
        label='Maximum Hourly Price (Heavy Vehicle)'
    )
    amenity = django_filters.CharFilter(method='filter_amenity', label='Has Amenity')

    class Meta:
        model = ParkingLot
        fields = {
            'city': ['exact', 'icontains'],
            'state': ['exact', 'icontains'],
            'is_verified': ['exact'],
        }

    def filter_amenity(self, queryset, name, value):
        # JSON containment is not available on every backend
        matching = [lot.pk for lot in queryset if value in (lot.amenities or [])]
        return queryset.filter(pk__in=matching)
