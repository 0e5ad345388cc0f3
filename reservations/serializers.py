# ==================== RESERVATIONS/SERIALIZERS.PY ====================
from rest_framework import serializers
from .models import Reservation
from parking.models import VEHICLE_TYPE_CHOICES
from parking.serializers import ParkingLotListSerializer


class ReservationCreateSerializer(serializers.Serializer):
    parking_lot = serializers.IntegerField()
    vehicle_type = serializers.ChoiceField(choices=VEHICLE_TYPE_CHOICES)
    number_plate = serializers.CharField(max_length=15)
    vehicle_model = serializers.CharField(max_length=100, required=False, allow_blank=True)
    vehicle_color = serializers.CharField(max_length=50, required=False, allow_blank=True)
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    special_requests = serializers.CharField(max_length=200, required=False, allow_blank=True)

    def validate(self, data):
        if data['end_time'] <= data['start_time']:
            raise serializers.ValidationError("End time must be after start time")
        return data


class ReservationListSerializer(serializers.ModelSerializer):
    parking_lot_name = serializers.CharField(source='parking_lot.name', read_only=True)

    class Meta:
        model = Reservation
        fields = ['id', 'parking_lot', 'parking_lot_name', 'vehicle_type', 'number_plate',
                  'start_time', 'end_time', 'duration_hours', 'status', 'total_amount', 'created_at']
        read_only_fields = fields


class ReservationDetailSerializer(serializers.ModelSerializer):
    parking_lot = ParkingLotListSerializer(read_only=True)
    can_cancel = serializers.BooleanField(read_only=True)

    class Meta:
        model = Reservation
        exclude = ['vehicle_time_hash']
        read_only_fields = ['user', 'status', 'qr_code', 'created_at', 'updated_at']


class ConflictQuerySerializer(serializers.Serializer):
    number_plate = serializers.CharField(max_length=15)
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    exclude_id = serializers.IntegerField(required=False)

    def validate(self, data):
        if data['end_time'] <= data['start_time']:
            raise serializers.ValidationError("End time must be after start time")
        return data


class UniquenessQuerySerializer(ConflictQuerySerializer):
    parking_lot = serializers.IntegerField()


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)


class CheckMethodSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=Reservation.CHECK_METHOD_CHOICES, default='manual')


class QRCodeSerializer(serializers.Serializer):
    qr_code = serializers.CharField(max_length=64)
