from django.contrib import admin

from .models import (
    Cliente,
    Cotizacion,
    Empresa,
    EtapaCotizacion,
    FormularioEtapa,
    HistorialEtapa,
    Interaccion,
    Nota,
    Proveedor,
    Tarea,
)


@admin.register(Empresa)
class EmpresaAdmin(admin.ModelAdmin):
    list_display = ("razon_social", "nombre_fantasia", "cuit", "localidad", "telefono")
    search_fields = ("razon_social", "nombre_fantasia", "cuit")


@admin.register(Proveedor)
class ProveedorAdmin(admin.ModelAdmin):
    list_display = ("razon_social", "cuit", "sucursal", "fecha_vto_cai")
    list_filter = ("sucursal",)
    search_fields = ("razon_social", "nombre_fantasia", "cuit", "proveedor_id")


class NotaInline(admin.TabularInline):
    model = Nota
    extra = 0
    readonly_fields = ("created_at", "user")


class InteraccionInline(admin.TabularInline):
    model = Interaccion
    extra = 0
    readonly_fields = ("fecha", "user")


@admin.register(Cliente)
class ClienteAdmin(admin.ModelAdmin):
    list_display = ("nombre_completo", "telefono", "email", "etapa", "prioridad", "vendedor_asignado")
    list_filter = ("etapa", "prioridad")
    search_fields = ("nombre_completo", "telefono", "email", "empresa")
    inlines = [NotaInline, InteraccionInline]


@admin.register(Tarea)
class TareaAdmin(admin.ModelAdmin):
    list_display = ("titulo", "fecha_vencimiento", "prioridad", "completada", "vendedor_asignado")
    list_filter = ("prioridad", "completada")
    search_fields = ("titulo", "descripcion")


class FormularioEtapaInline(admin.StackedInline):
    model = FormularioEtapa
    extra = 0


@admin.register(EtapaCotizacion)
class EtapaCotizacionAdmin(admin.ModelAdmin):
    list_display = ("nombre", "color", "created_at")
    inlines = [FormularioEtapaInline]


class HistorialEtapaInline(admin.TabularInline):
    model = HistorialEtapa
    extra = 0
    readonly_fields = ("etapa", "etapa_nombre", "fecha", "datos_formulario")


@admin.register(Cotizacion)
class CotizacionAdmin(admin.ModelAdmin):
    list_display = ("codigo", "cliente", "etapa", "monto_total", "vendedor", "sucursal", "created_at")
    list_filter = ("etapa", "sucursal")
    search_fields = ("codigo", "nombre", "cliente__nombre_completo")
    inlines = [HistorialEtapaInline]
