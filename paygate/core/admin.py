from django.contrib import admin

from paygate.core.models import SystemConfig


@admin.register(SystemConfig)
class SystemConfigAdmin(admin.ModelAdmin):
    list_display = ["key", "value", "modified"]
    readonly_fields = ["created", "modified"]
