from django.contrib import admin

from .models import Proyecto


@admin.register(Proyecto)
class ProyectoAdmin(admin.ModelAdmin):
    list_display = ("numero_orden", "cliente", "estado_actual", "vendedor", "created_at")
    list_filter = ("estado_actual",)
    search_fields = ("numero_orden", "cliente__nombre_completo")
    readonly_fields = ("numero_orden", "created_at", "updated_at")
