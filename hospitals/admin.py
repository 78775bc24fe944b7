# hospitals/admin.py
from django.contrib import admin
from django.utils.html import format_html

from matching.choices import MatchResponse, RequestStatus
from .models import AidRequest, HospitalProfile


@admin.register(AidRequest)
class AidRequestAdmin(admin.ModelAdmin):
    list_display = [
        'id',
        'hospital_name',
        'kind',
        'blood_type',
        'quantity_ml',
        'urgency',
        'status',
        'waiting',
        'match_count',
    ]
    list_filter = ['status', 'kind', 'urgency', 'blood_type', 'created_at']
    search_fields = ['patient__full_name', 'hospital__hospital_name', 'reason']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Request Information', {
            'fields': ('patient', 'hospital', 'kind', 'blood_type', 'quantity_ml',
                       'urgency', 'required_by', 'reason', 'notes', 'status')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    @admin.display(description='Hospital')
    def hospital_name(self, obj):
        return obj.hospital.hospital_name if obj.hospital else '-'

    @admin.display(description='Waiting')
    def waiting(self, obj):
        if obj.status != RequestStatus.PENDING:
            return '-'
        return f"{obj.hours_waiting:.1f}h"

    @admin.display(description='Donors')
    def match_count(self, obj):
        total = obj.matches.count()
        accepted = obj.matches.filter(response=MatchResponse.ACCEPTED).count()
        return format_html(
            '<span style="color: blue;">Total: {}</span> | '
            '<span style="color: green;">Accepted: {}</span>',
            total, accepted
        )


@admin.register(HospitalProfile)
class HospitalProfileAdmin(admin.ModelAdmin):
    list_display = ['hospital_name', 'phone', 'city', 'is_verified', 'total_requests']
    list_filter = ['is_verified', 'city', 'created_at']
    search_fields = ['hospital_name', 'phone', 'address', 'license_number']

    @admin.display(description='Requests')
    def total_requests(self, obj):
        total = obj.aid_requests.count()
        pending = obj.aid_requests.filter(status=RequestStatus.PENDING).count()
        fulfilled = obj.aid_requests.filter(status=RequestStatus.FULFILLED).count()
        return format_html(
            'Total: {} | Pending: {} | Fulfilled: {}',
            total, pending, fulfilled
        )
