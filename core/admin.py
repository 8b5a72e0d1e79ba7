from django.contrib import admin

from .models import AuditLog, ConfigOpcion, Prioridad, RoleAccess, Sucursal, UserProfile


@admin.register(Sucursal)
class SucursalAdmin(admin.ModelAdmin):
    list_display = ("nombre", "direccion", "email", "cbu")
    search_fields = ("nombre", "direccion", "email", "cbu")


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "sucursal")
    search_fields = ("user__username", "user__email", "user__first_name")
    list_filter = ("sucursal",)


@admin.register(RoleAccess)
class RoleAccessAdmin(admin.ModelAdmin):
    list_display = ("role", "updated_at")


@admin.register(Prioridad)
class PrioridadAdmin(admin.ModelAdmin):
    list_display = ("nombre", "activa")
    list_filter = ("activa",)


@admin.register(ConfigOpcion)
class ConfigOpcionAdmin(admin.ModelAdmin):
    list_display = ("tipo", "valor", "created_at")
    list_filter = ("tipo",)
    search_fields = ("valor",)


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "user", "action", "model", "object_id")
    list_filter = ("action", "model")
    search_fields = ("model", "object_id", "user__username")
    readonly_fields = ("timestamp", "user", "action", "model", "object_id", "payload")
