# api/serializers.py
from rest_framework import serializers

from accounts.models import Notification
from donors.models import DonorMatch
from hospitals.models import AidRequest
from matching.choices import BloodGroup, MatchResponse, RequestKind
from matching.exceptions import ValidationError


class BloodGroupField(serializers.Field):
    """Accepts any spelling BloodGroup.parse understands; always renders the symbol"""
    default_error_messages = {'invalid': '{message}'}

    def to_internal_value(self, data):
        try:
            return BloodGroup.parse(data).value
        except ValidationError as e:
            self.fail('invalid', message=str(e))

    def to_representation(self, value):
        return BloodGroup.parse(value).value if value else None


class AidRequestSerializer(serializers.ModelSerializer):
    """
    Serializer for AidRequest; patient and hospital are plain ids so that missing
    references are reported by the submission service (404) rather than as field errors
    """
    patient_id = serializers.IntegerField()
    hospital_id = serializers.IntegerField(required=False, allow_null=True)
    blood_type = BloodGroupField(required=False, allow_null=True)
    hospital_name = serializers.CharField(source='hospital.hospital_name', read_only=True, default=None)

    class Meta:
        model = AidRequest
        fields = [
            'id',
            'patient_id',
            'hospital_id',
            'hospital_name',
            'kind',
            'blood_type',
            'quantity_ml',
            'urgency',
            'required_by',
            'status',
            'reason',
            'notes',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['status', 'created_at', 'updated_at']

    def validate(self, attrs):
        kind = RequestKind(attrs.get('kind', RequestKind.BLOOD))
        if kind.requires_donors:
            if not attrs.get('blood_type'):
                raise serializers.ValidationError({'blood_type': f"Required for {kind.label.lower()} requests."})
            if not attrs.get('quantity_ml'):
                raise serializers.ValidationError({'quantity_ml': "Must be greater than zero."})
        elif attrs.get('blood_type'):
            raise serializers.ValidationError({'blood_type': "Ventilator requests do not take a blood group."})
        return attrs


class DonorMatchSerializer(serializers.ModelSerializer):
    donor_name = serializers.CharField(source='donor.full_name', read_only=True)
    donor_blood_type = serializers.CharField(source='donor.blood_type', read_only=True)

    class Meta:
        model = DonorMatch
        fields = [
            'id',
            'request',
            'donor',
            'donor_name',
            'donor_blood_type',
            'score',
            'distance_km',
            'response',
            'responded_at',
            'created_at',
        ]


class DonorResponseSerializer(serializers.Serializer):
    response = serializers.ChoiceField(choices=[MatchResponse.ACCEPTED, MatchResponse.REJECTED])


class ApproveSerializer(serializers.Serializer):
    hospital_id = serializers.IntegerField(required=False, allow_null=True)


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            'id',
            'title',
            'message',
            'notification_type',
            'priority',
            'related_request',
            'is_read',
            'created_at',
            'read_at',
        ]
