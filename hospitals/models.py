# hospitals/models.py
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from matching.choices import BloodGroup, RequestKind, RequestStatus, Urgency


class HospitalProfile(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='hospital_profile'
    )
    hospital_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=15)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)

    # Geolocation; anchor for the donor proximity search
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    license_number = models.CharField(max_length=100, blank=True)
    is_verified = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.hospital_name

    class Meta:
        verbose_name = 'Hospital Profile'
        verbose_name_plural = 'Hospital Profiles'


class AidRequest(models.Model):
    """A patient's request for blood, plasma or a ventilator"""
    patient = models.ForeignKey(
        'patients.PatientProfile',
        on_delete=models.PROTECT,
        related_name='requests'
    )
    hospital = models.ForeignKey(
        HospitalProfile,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='aid_requests'
    )

    kind = models.CharField(max_length=10, choices=RequestKind.choices, default=RequestKind.BLOOD)
    # Null for ventilator requests
    blood_type = models.CharField(max_length=3, choices=BloodGroup.choices, null=True, blank=True)
    quantity_ml = models.PositiveIntegerField(default=0, validators=[MinValueValidator(0)])
    urgency = models.CharField(max_length=10, choices=Urgency.choices, default=Urgency.NORMAL)
    required_by = models.DateTimeField(null=True, blank=True)

    status = models.CharField(max_length=10, choices=RequestStatus.choices, default=RequestStatus.PENDING)
    reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Request #{self.pk} {self.kind} {self.blood_type or ''} ({self.urgency}, {self.status})"

    @property
    def hours_waiting(self):
        """Hours since the request was submitted"""
        delta = timezone.now() - self.created_at
        return delta.total_seconds() / 3600

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Aid Request'
        verbose_name_plural = 'Aid Requests'
        indexes = [
            models.Index(fields=['status', 'urgency'], name='aidrequest_status_urgency_idx'),
        ]
