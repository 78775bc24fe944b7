from django.contrib import admin

from .models import DonorMatch, DonorProfile


@admin.register(DonorProfile)
class DonorProfileAdmin(admin.ModelAdmin):
    list_display   = ['full_name', 'blood_type', 'city', 'last_donation_date', 'is_available', 'can_donate_display']
    list_filter    = ['blood_type', 'is_available', 'city']
    search_fields  = ['full_name', 'user__username', 'phone']
    ordering       = ['full_name']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Personal Info', {
            'fields': ('user', 'full_name', 'phone', 'blood_type', 'address', 'city')
        }),
        ('Location', {
            'fields': ('latitude', 'longitude')
        }),
        ('Donation', {
            'fields': ('last_donation_date', 'is_available')
        }),
        ('Health', {
            'fields': ('weight', 'medical_conditions'),
            'classes': ('collapse',),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    @admin.display(boolean=True, description='Can Donate Now')
    def can_donate_display(self, obj):
        return obj.can_donate

    actions = ['mark_unavailable']

    @admin.action(description='Mark selected donors as unavailable')
    def mark_unavailable(self, request, queryset):
        updated = queryset.update(is_available=False)
        self.message_user(request, f'{updated} donor(s) marked unavailable.')


@admin.register(DonorMatch)
class DonorMatchAdmin(admin.ModelAdmin):
    list_display  = ['request', 'donor', 'score', 'distance_km', 'response', 'created_at', 'response_time']
    list_filter   = ['response']
    search_fields = ['donor__full_name', 'request__hospital__hospital_name']
    ordering      = ['request', '-score']
    # Written only by the matching services; rows are never edited or deleted here
    readonly_fields = ['request', 'donor', 'score', 'distance_km', 'response', 'created_at', 'responded_at']

    @admin.display(description='Response Time')
    def response_time(self, obj):
        hours = obj.response_time_hours
        return f"{hours}h" if hours is not None else '-'

    def has_delete_permission(self, request, obj=None):
        return False
