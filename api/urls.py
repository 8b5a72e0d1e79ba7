from django.urls import path

from .auth_views import CheckFirstAdminView, LoginView, LogoutView, RegisterView, SessionView
from .core_views import (
    AvatarView,
    ConfiguracionView,
    PerfilView,
    PrioridadesView,
    RoleAccessView,
    SucursalDetailView,
    SucursalesView,
    UsuarioCreateView,
    UsuarioDetailView,
    UsuariosView,
)
from .crm_views import (
    ClienteCotizacionesView,
    ClienteDetailView,
    ClienteImportView,
    ClienteInteraccionesView,
    ClienteNotasView,
    ClientePrioridadesView,
    ClientesView,
    ClienteTareasView,
    CotizacionDetailView,
    CotizacionesView,
    CotizacionMoveView,
    CotizacionReorderView,
    CotizacionUndoView,
    DashboardStatsView,
    EmpresaDetailView,
    EmpresasSimpleView,
    EmpresasView,
    EtapaCotizacionDetailView,
    EtapasCotizacionView,
    FormularioEtapaView,
    ProveedorDetailView,
    ProveedoresView,
    TareaDetailView,
    TareasView,
)
from .inventario_views import (
    BalancesView,
    BomDetailView,
    BomsView,
    ItemDetailView,
    ItemsView,
    MovementsView,
    ProduceView,
    ReservationReleaseView,
    ReservationsView,
    WarehouseLocationsView,
    WarehousesView,
)
from .proyectos_views import ProyectoDetailView, ProyectosView

urlpatterns = [
    path("auth/login/", LoginView.as_view(), name="api_auth_login"),
    path("auth/logout/", LogoutView.as_view(), name="api_auth_logout"),
    path("auth/session/", SessionView.as_view(), name="api_auth_session"),
    path("register/", RegisterView.as_view(), name="api_register"),
    path("check-first-admin/", CheckFirstAdminView.as_view(), name="api_check_first_admin"),
    path("users/", UsuariosView.as_view(), name="api_users"),
    path("users/create/", UsuarioCreateView.as_view(), name="api_users_create"),
    path("users/me/", PerfilView.as_view(), name="api_users_me"),
    path("users/me/avatar/", AvatarView.as_view(), name="api_users_me_avatar"),
    path("users/<int:user_id>/", UsuarioDetailView.as_view(), name="api_user_detail"),
    path("role-access/", RoleAccessView.as_view(), name="api_role_access"),
    path("sucursales/", SucursalesView.as_view(), name="api_sucursales"),
    path("sucursales/<int:sucursal_id>/", SucursalDetailView.as_view(), name="api_sucursal_detail"),
    path("prioridades/", PrioridadesView.as_view(), name="api_prioridades"),
    path("configuracion/<slug:tipo>/", ConfiguracionView.as_view(), name="api_configuracion"),
    # CRM
    path("clientes/", ClientesView.as_view(), name="api_clientes"),
    path("clientes/import/", ClienteImportView.as_view(), name="api_clientes_import"),
    path("clientes/prioridades/", ClientePrioridadesView.as_view(), name="api_clientes_prioridades"),
    path("clientes/<int:cliente_id>/", ClienteDetailView.as_view(), name="api_cliente_detail"),
    path("clientes/<int:cliente_id>/notas/", ClienteNotasView.as_view(), name="api_cliente_notas"),
    path(
        "clientes/<int:cliente_id>/interacciones/",
        ClienteInteraccionesView.as_view(),
        name="api_cliente_interacciones",
    ),
    path(
        "clientes/<int:cliente_id>/cotizaciones/",
        ClienteCotizacionesView.as_view(),
        name="api_cliente_cotizaciones",
    ),
    path("clientes/<int:cliente_id>/tareas/", ClienteTareasView.as_view(), name="api_cliente_tareas"),
    path("empresas/", EmpresasView.as_view(), name="api_empresas"),
    path("empresas/simple/", EmpresasSimpleView.as_view(), name="api_empresas_simple"),
    path("empresas/<int:empresa_id>/", EmpresaDetailView.as_view(), name="api_empresa_detail"),
    path("proveedores/", ProveedoresView.as_view(), name="api_proveedores"),
    path("proveedores/<int:proveedor_id>/", ProveedorDetailView.as_view(), name="api_proveedor_detail"),
    path("etapas-cotizacion/", EtapasCotizacionView.as_view(), name="api_etapas_cotizacion"),
    path(
        "etapas-cotizacion/<int:etapa_id>/",
        EtapaCotizacionDetailView.as_view(),
        name="api_etapa_cotizacion_detail",
    ),
    path("formularios-etapa/<int:etapa_id>/", FormularioEtapaView.as_view(), name="api_formulario_etapa"),
    path("cotizaciones/", CotizacionesView.as_view(), name="api_cotizaciones"),
    path("cotizaciones/reorder/", CotizacionReorderView.as_view(), name="api_cotizaciones_reorder"),
    path("cotizaciones/<int:cotizacion_id>/", CotizacionDetailView.as_view(), name="api_cotizacion_detail"),
    path("cotizaciones/<int:cotizacion_id>/move/", CotizacionMoveView.as_view(), name="api_cotizacion_move"),
    path("cotizaciones/<int:cotizacion_id>/undo/", CotizacionUndoView.as_view(), name="api_cotizacion_undo"),
    path("tareas/", TareasView.as_view(), name="api_tareas"),
    path("tareas/<int:tarea_id>/", TareaDetailView.as_view(), name="api_tarea_detail"),
    path("dashboard/stats/", DashboardStatsView.as_view(), name="api_dashboard_stats"),
    # Proyectos
    path("proyectos/", ProyectosView.as_view(), name="api_proyectos"),
    path("proyectos/<int:proyecto_id>/", ProyectoDetailView.as_view(), name="api_proyecto_detail"),
    # Stock
    path("stock/items/", ItemsView.as_view(), name="api_stock_items"),
    path("stock/items/<int:item_id>/", ItemDetailView.as_view(), name="api_stock_item_detail"),
    path("stock/warehouses/", WarehousesView.as_view(), name="api_stock_warehouses"),
    path(
        "stock/warehouses/<int:warehouse_id>/locations/",
        WarehouseLocationsView.as_view(),
        name="api_stock_warehouse_locations",
    ),
    path("stock/balances/", BalancesView.as_view(), name="api_stock_balances"),
    path("stock/movements/", MovementsView.as_view(), name="api_stock_movements"),
    path("stock/reservations/", ReservationsView.as_view(), name="api_stock_reservations"),
    path(
        "stock/reservations/<int:reservation_id>/release/",
        ReservationReleaseView.as_view(),
        name="api_stock_reservation_release",
    ),
    path("stock/boms/", BomsView.as_view(), name="api_stock_boms"),
    path("stock/boms/<int:bom_id>/", BomDetailView.as_view(), name="api_stock_bom_detail"),
    path("stock/produce/", ProduceView.as_view(), name="api_stock_produce"),
]
