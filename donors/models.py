from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from algorithms.eligibility import is_donor_eligible
from matching.choices import BloodGroup, MatchResponse, RequestKind


# ---------------------------
# Donor Profile
# ---------------------------
class DonorProfile(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='donor_profile'
    )

    full_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=15, db_index=True)
    blood_type = models.CharField(max_length=3, choices=BloodGroup.choices, db_index=True)
    address = models.TextField(blank=True)
    city = models.CharField(max_length=100, blank=True)

    # Geolocation (optional); unset or (0, 0) means unknown
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    last_donation_date = models.DateField(null=True, blank=True)
    is_available = models.BooleanField(default=True)

    # Health info
    weight = models.FloatField(
        null=True, blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(300)],
        help_text="Weight in kg"
    )
    medical_conditions = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def can_donate(self) -> bool:
        """Available, and outside the whole-blood donation window"""
        return is_donor_eligible(self, RequestKind.BLOOD)

    def __str__(self):
        return f"{self.full_name} ({self.blood_type})"

    class Meta:
        verbose_name = "Donor Profile"
        verbose_name_plural = "Donor Profiles"
        ordering = ['-created_at']


# ---------------------------
# Donor Match
# ---------------------------
class DonorMatch(models.Model):
    """
    A scored association between one request and one notified donor.

    Created when the donor is notified, updated once when they respond,
    never deleted.
    """
    request = models.ForeignKey(
        'hospitals.AidRequest',
        on_delete=models.PROTECT,
        related_name='matches'
    )
    donor = models.ForeignKey(
        DonorProfile,
        on_delete=models.PROTECT,
        related_name='matches'
    )

    score = models.FloatField(
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text="Match score (0-100)"
    )
    distance_km = models.FloatField(help_text="Distance in km; 0 when the donor location is unknown")

    response = models.CharField(
        max_length=10,
        choices=MatchResponse.choices,
        default=MatchResponse.PENDING
    )
    responded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Match → {self.donor.full_name} | Request #{self.request_id} ({self.response})"

    @property
    def response_time_hours(self):
        if self.responded_at:
            delta = self.responded_at - self.created_at
            return round(delta.total_seconds() / 3600, 2)
        return None

    class Meta:
        ordering = ['-score', 'created_at']
        constraints = [
            models.UniqueConstraint(fields=['request', 'donor'], name='unique_match_per_request_donor'),
        ]
        indexes = [
            models.Index(fields=['request', 'response'], name='donormatch_request_resp_idx'),
        ]
