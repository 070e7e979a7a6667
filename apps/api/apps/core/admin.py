from django.contrib import admin
from .models import Clinic


@admin.register(Clinic)
class ClinicAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'phone', 'created_at']
    search_fields = ['name', 'phone', 'owner__phone']
    readonly_fields = ['id', 'created_at', 'updated_at']
    autocomplete_fields = ['owner']
