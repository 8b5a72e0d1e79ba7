from django.contrib.auth.models import Group, Permission
from django.core.management.base import BaseCommand

from core.access import (
    ROLE_ADMIN,
    ROLE_ADMINISTRATIVO,
    ROLE_DEPOSITO,
    ROLE_GERENTE,
    ROLE_LOGISTICA,
    ROLE_POST_VENTA,
    ROLE_TECNICO,
    ROLE_TECNICO_TALLER,
    ROLE_VENDEDOR,
)

_CRM_VENTAS = [
    "crm.view_cliente",
    "crm.add_cliente",
    "crm.change_cliente",
    "crm.view_nota",
    "crm.add_nota",
    "crm.view_interaccion",
    "crm.add_interaccion",
    "crm.view_tarea",
    "crm.add_tarea",
    "crm.change_tarea",
    "crm.view_cotizacion",
    "crm.add_cotizacion",
    "crm.change_cotizacion",
    "crm.view_etapacotizacion",
    "crm.view_empresa",
    "crm.add_empresa",
    "crm.change_empresa",
]
_PROYECTOS_OPERACION = [
    "proyectos.view_proyecto",
    "proyectos.change_proyecto",
    "crm.view_tarea",
    "crm.add_tarea",
    "crm.change_tarea",
]
_STOCK_LECTURA = [
    "inventario.view_item",
    "inventario.view_warehouse",
    "inventario.view_location",
    "inventario.view_stockbalance",
    "inventario.view_stockmovement",
    "inventario.view_stockreservation",
    "inventario.view_bom",
]
_STOCK_OPERACION = _STOCK_LECTURA + [
    "inventario.add_item",
    "inventario.change_item",
    "inventario.add_warehouse",
    "inventario.add_location",
    "inventario.add_stockmovement",
    "inventario.add_stockreservation",
    "inventario.change_stockreservation",
    "inventario.add_bom",
    "inventario.change_bom",
]

ROLE_PERMS = {
    ROLE_ADMIN: ["core.view_auditlog", "core.change_roleaccess", "core.change_sucursal"]
    + _CRM_VENTAS
    + ["crm.delete_cliente", "crm.delete_cotizacion", "crm.add_etapacotizacion", "crm.delete_etapacotizacion"]
    + _PROYECTOS_OPERACION
    + ["proyectos.add_proyecto", "proyectos.delete_proyecto"]
    + _STOCK_OPERACION,
    ROLE_GERENTE: ["core.view_auditlog", "core.change_sucursal"]
    + _CRM_VENTAS
    + ["crm.add_etapacotizacion"]
    + _PROYECTOS_OPERACION
    + ["proyectos.add_proyecto"]
    + _STOCK_OPERACION,
    ROLE_ADMINISTRATIVO: _CRM_VENTAS + _PROYECTOS_OPERACION + ["proyectos.add_proyecto"],
    ROLE_VENDEDOR: _CRM_VENTAS,
    ROLE_POST_VENTA: _CRM_VENTAS,
    ROLE_TECNICO: _PROYECTOS_OPERACION,
    ROLE_TECNICO_TALLER: _PROYECTOS_OPERACION,
    ROLE_LOGISTICA: _PROYECTOS_OPERACION,
    ROLE_DEPOSITO: _PROYECTOS_OPERACION + _STOCK_OPERACION,
}


class Command(BaseCommand):
    help = "Crea los grupos de rol y asigna sus permisos de modelo."

    def handle(self, *args, **options):
        created = 0
        for role, perm_codes in ROLE_PERMS.items():
            group, was_created = Group.objects.get_or_create(name=role)
            if was_created:
                created += 1
            perms = []
            for code in sorted(set(perm_codes)):
                app_label, codename = code.split(".", 1)
                perm = Permission.objects.filter(content_type__app_label=app_label, codename=codename).first()
                if perm is None:
                    self.stdout.write(self.style.WARNING(f"Permiso no encontrado: {code}"))
                    continue
                perms.append(perm)
            group.permissions.set(perms)
        self.stdout.write(self.style.SUCCESS(f"Roles listos. Nuevos grupos creados: {created}"))
