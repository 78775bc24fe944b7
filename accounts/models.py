from django.contrib.auth.models import AbstractUser
from django.db import models

from matching.choices import NotificationPriority, NotificationType


class CustomUser(AbstractUser):
    USER_TYPE_CHOICES = (
        ('donor', 'Donor'),
        ('patient', 'Patient'),
        ('hospital', 'Hospital'),
        ('super_admin', 'Super Admin'),
    )

    user_type = models.CharField(
        max_length=15,
        choices=USER_TYPE_CHOICES,
        default='donor'
    )
    email = models.EmailField(unique=True)
    phone = models.CharField(max_length=15, blank=True)

    def __str__(self):
        return f"{self.username} ({self.user_type})"


class Notification(models.Model):
    """In-app notification shown in a user's inbox"""
    user = models.ForeignKey(
        CustomUser,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    title = models.CharField(max_length=200)
    message = models.TextField()
    notification_type = models.CharField(
        max_length=10,
        choices=NotificationType.choices,
        default=NotificationType.GENERAL
    )
    priority = models.CharField(
        max_length=6,
        choices=NotificationPriority.choices,
        default=NotificationPriority.MEDIUM
    )

    # Request the notification is about, if any
    related_request = models.ForeignKey(
        'hospitals.AidRequest',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications'
    )

    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    read_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.title} → {self.user.username}"

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notification_user_read_idx'),
        ]
