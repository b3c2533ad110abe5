# core/admin.py

from django.contrib import admin

from core.models import DocumentSequence


@admin.register(DocumentSequence)
class DocumentSequenceAdmin(admin.ModelAdmin):
    list_display = ("prefix", "current_number", "updated_at")
    readonly_fields = ("prefix", "current_number", "updated_at")
    search_fields = ("prefix",)
