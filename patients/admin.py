from django.contrib import admin

from .models import PatientProfile


@admin.register(PatientProfile)
class PatientProfileAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'blood_type', 'city', 'phone', 'created_at']
    list_filter = ['blood_type', 'city']
    search_fields = ['full_name', 'user__username', 'phone']
    readonly_fields = ['created_at', 'updated_at']
