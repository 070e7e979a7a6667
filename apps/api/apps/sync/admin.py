from django.contrib import admin
from .models import SyncCursor


@admin.register(SyncCursor)
class SyncCursorAdmin(admin.ModelAdmin):
    list_display = ['device_id', 'clinic', 'last_pulled_at']
    list_filter = ['clinic']
    search_fields = ['device_id', 'clinic__name']
    readonly_fields = ['clinic', 'device_id', 'last_pulled_at']
