# ==================== PARKING/SERIALIZERS.PY ====================
import re

from rest_framework import serializers
from .models import ParkingLot, AMENITY_CHOICES, DAYS_OF_WEEK, VEHICLE_TYPE_CHOICES, default_operating_hours
from users.serializers import UserProfileSerializer

AMENITIES = [choice[0] for choice in AMENITY_CHOICES]
TIME_OF_DAY = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


class ParkingLotListSerializer(serializers.ModelSerializer):
    """Simplified serializer for listing parking lots"""
    vendor_name = serializers.CharField(source='vendor.business_name', read_only=True)
    distance = serializers.SerializerMethodField()

    class Meta:
        model = ParkingLot
        fields = ['id', 'name', 'street', 'city', 'state', 'latitude', 'longitude',
                  'capacity_two_wheeler', 'capacity_four_wheeler', 'capacity_heavy_vehicle',
                  'hourly_rate_two_wheeler', 'hourly_rate_four_wheeler', 'hourly_rate_heavy_vehicle',
                  'amenities', 'rating', 'total_reviews', 'vendor_name', 'distance', 'is_verified']

    def get_distance(self, obj):
        """Distance in km, when the view annotated one"""
        distance = getattr(obj, 'distance_km', None)
        return round(distance, 2) if distance is not None else None


class ParkingLotDetailSerializer(serializers.ModelSerializer):
    """Detailed serializer for parking lot with all info"""
    vendor = UserProfileSerializer(read_only=True)
    is_currently_open = serializers.SerializerMethodField()

    class Meta:
        model = ParkingLot
        fields = '__all__'

    def get_is_currently_open(self, obj):
        return obj.is_currently_open()


class ParkingLotCreateUpdateSerializer(serializers.ModelSerializer):
    """For creating/updating parking lots"""

    class Meta:
        model = ParkingLot
        fields = ['id', 'name', 'description', 'street', 'city', 'state', 'pincode', 'latitude', 'longitude',
                  'contact_phone', 'capacity_two_wheeler', 'capacity_four_wheeler', 'capacity_heavy_vehicle',
                  'hourly_rate_two_wheeler', 'hourly_rate_four_wheeler', 'hourly_rate_heavy_vehicle',
                  'amenities', 'operating_hours', 'is_active']
        read_only_fields = ['id']

    def validate_pincode(self, value):
        if not re.match(r'^[1-9][0-9]{5}$', value):
            raise serializers.ValidationError("Please enter a valid pincode")
        return value

    def validate_amenities(self, value):
        unknown = [amenity for amenity in value if amenity not in AMENITIES]
        if unknown:
            raise serializers.ValidationError(f"Unknown amenities: {', '.join(unknown)}")
        return value

    def validate_operating_hours(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Operating hours must be an object keyed by day")
        hours = default_operating_hours()
        # Updates change only the days sent, the rest keep the lot's current hours
        if self.instance is not None:
            for day, entry in (self.instance.operating_hours or {}).items():
                if day in hours and isinstance(entry, dict):
                    hours[day] = {**hours[day], **entry}
        for day, entry in value.items():
            if day not in DAYS_OF_WEEK:
                raise serializers.ValidationError(f"Unknown day: {day}")
            if not isinstance(entry, dict):
                raise serializers.ValidationError(f"Invalid hours for {day}")
            merged = {**hours[day], **entry}
            for key in ('open_time', 'close_time'):
                if not TIME_OF_DAY.match(str(merged[key])):
                    raise serializers.ValidationError(f"{day}.{key} must be HH:MM")
            try:
                merged['is_open'] = serializers.BooleanField().to_internal_value(merged['is_open'])
            except serializers.ValidationError:
                raise serializers.ValidationError(f"{day}.is_open must be true or false")
            hours[day] = merged
        return hours

    def create(self, validated_data):
        return ParkingLot.objects.create(vendor=self.context['request'].user, **validated_data)


class AvailabilityQuerySerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    vehicle_type = serializers.ChoiceField(choices=VEHICLE_TYPE_CHOICES)
    quantity = serializers.IntegerField(min_value=1, default=1)

    def validate(self, data):
        if data['end_time'] <= data['start_time']:
            raise serializers.ValidationError("End time must be after start time")
        return data


class HourlyAvailabilityQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    vehicle_type = serializers.ChoiceField(choices=VEHICLE_TYPE_CHOICES, default='two_wheeler')


class LotSearchQuerySerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    vehicle_type = serializers.ChoiceField(choices=VEHICLE_TYPE_CHOICES)
    lat = serializers.FloatField(required=False, min_value=-90, max_value=90)
    lng = serializers.FloatField(required=False, min_value=-180, max_value=180)
    radius = serializers.FloatField(required=False, default=5, min_value=0)  # In km
    city = serializers.CharField(required=False)

    def validate(self, data):
        if data['end_time'] <= data['start_time']:
            raise serializers.ValidationError("End time must be after start time")
        if ('lat' in data) != ('lng' in data):
            raise serializers.ValidationError("Provide both lat and lng")
        return data
