from __future__ import annotations

import logging
from datetime import date

from django.db import transaction
from django.db.models import Count, Max, OuterRef, ProtectedError, Q, Subquery, Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response

from core.access import can_manage_pipeline_stages, can_view_clientes, can_view_pipeline, is_branch_admin
from core.audit import log_event
from core.models import Sucursal, UserProfile
from core.normalizacion import normalizar_nombre
from crm.filters import ClienteFilter, CotizacionFilter
from crm.importacion import ImportacionError, importar_clientes, leer_archivo
from crm.models import (
    Cliente,
    Cotizacion,
    Empresa,
    EtapaCotizacion,
    FormularioEtapa,
    Proveedor,
    Tarea,
)
from crm.pipeline import (
    OPERACIONES,
    aplicar_operacion,
    crear_cotizacion,
    deshacer_movimiento,
    mover_cotizacion,
    reordenar,
)

from .base import EnvelopeAPIView
from .crm_serializers import (
    ClienteSerializer,
    CotizacionCreateSerializer,
    CotizacionDetalleSerializer,
    CotizacionSerializer,
    CotizacionUpdateSerializer,
    EmpresaSerializer,
    EmpresaSimpleSerializer,
    EtapaCotizacionSerializer,
    FormularioEtapaSerializer,
    InteraccionSerializer,
    MoverCotizacionSerializer,
    NotaSerializer,
    ProveedorSerializer,
    ReordenarSerializer,
    TareaSerializer,
)

logger = logging.getLogger(__name__)

TAREAS_COMPLETADAS_LIMIT = 50
EMPRESAS_SIMPLE_LIMIT = 200


class _CRMBaseView(EnvelopeAPIView):
    def _clientes_qs(self):
        ultima_cotizacion = Cotizacion.objects.filter(cliente=OuterRef("pk")).order_by("-created_at", "-id")
        return Cliente.objects.select_related("vendedor_asignado", "empresa_asignada").annotate(
            ultimo_contacto=Max("interacciones__fecha"),
            ultima_cotizacion_monto=Subquery(ultima_cotizacion.values("monto_total")[:1]),
        )

    def _cliente(self, cliente_id: int) -> Cliente:
        return get_object_or_404(self._clientes_qs(), pk=cliente_id)

    @staticmethod
    def _sucursal_usuario(user) -> Sucursal | None:
        profile = UserProfile.objects.select_related("sucursal").filter(user=user).first()
        return profile.sucursal if profile else None


# --- Clientes ---------------------------------------------------------------


class ClientesView(_CRMBaseView):
    def get(self, request):
        if not can_view_clientes(request.user):
            return self._forbidden("consultar clientes")
        filterset = ClienteFilter(request.query_params, queryset=self._clientes_qs())
        if not filterset.is_valid():
            return self._invalid_filters(filterset)
        return self._paginate(request, filterset.qs, ClienteSerializer)

    def post(self, request):
        if not can_view_clientes(request.user):
            return self._forbidden("crear clientes")
        serializer = ClienteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cliente = serializer.save(vendedor_asignado=request.user)
        log_event(
            request.user,
            "CREATE",
            "crm.Cliente",
            str(cliente.id),
            {"nombre": cliente.nombre_completo, "telefono": cliente.telefono},
        )
        return self._ok(ClienteSerializer(self._cliente(cliente.id)).data, status.HTTP_201_CREATED)


class ClienteDetailView(_CRMBaseView):
    def get(self, request, cliente_id: int):
        if not can_view_clientes(request.user):
            return self._forbidden("consultar clientes")
        return self._ok(ClienteSerializer(self._cliente(cliente_id)).data)

    def put(self, request, cliente_id: int):
        if not can_view_clientes(request.user):
            return self._forbidden("editar clientes")
        cliente = get_object_or_404(Cliente, pk=cliente_id)
        serializer = ClienteSerializer(cliente, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        log_event(request.user, "UPDATE", "crm.Cliente", str(cliente.id), {"campos": sorted(request.data.keys())})
        return self._ok(ClienteSerializer(self._cliente(cliente.id)).data)

    def delete(self, request, cliente_id: int):
        if not can_view_clientes(request.user):
            return self._forbidden("eliminar clientes")
        cliente = get_object_or_404(Cliente, pk=cliente_id)
        nombre = cliente.nombre_completo
        try:
            cliente.delete()
        except ProtectedError:
            return self._fail("El cliente tiene proyectos asociados.", status.HTTP_409_CONFLICT)
        log_event(request.user, "DELETE", "crm.Cliente", str(cliente_id), {"nombre": nombre})
        return Response(status=status.HTTP_204_NO_CONTENT)


class ClienteImportView(_CRMBaseView):
    def post(self, request):
        if not can_view_clientes(request.user):
            return self._forbidden("importar clientes")

        upload = request.FILES.get("file")
        if upload is not None:
            try:
                rows = leer_archivo(upload.name, upload.read())
            except ImportacionError as exc:
                logger.info("Importación rechazada (%s): %s", upload.name, exc)
                return self._fail(str(exc))
            origen = upload.name
        else:
            rows = request.data.get("clientes")
            if not isinstance(rows, list):
                return self._fail("Envía 'clientes' como lista o un archivo CSV/XLSX en 'file'.")
            origen = "json"

        result = importar_clientes(rows, vendedor=request.user)
        log_event(request.user, "IMPORT", "crm.Cliente", origen, result)
        return self._ok(result, status.HTTP_201_CREATED)


class ClientePrioridadesView(_CRMBaseView):
    def get(self, request):
        if not can_view_clientes(request.user):
            return self._forbidden("consultar prioridades de clientes")
        prioridades = (
            Cliente.objects.exclude(prioridad="").values_list("prioridad", flat=True).distinct().order_by("prioridad")
        )
        return self._ok(list(prioridades))


class ClienteNotasView(_CRMBaseView):
    def get(self, request, cliente_id: int):
        if not can_view_clientes(request.user):
            return self._forbidden("consultar notas de clientes")
        cliente = get_object_or_404(Cliente, pk=cliente_id)
        notas = cliente.notas_cliente.select_related("user")
        return self._ok(NotaSerializer(notas, many=True).data)

    def post(self, request, cliente_id: int):
        if not can_view_clientes(request.user):
            return self._forbidden("crear notas de clientes")
        cliente = get_object_or_404(Cliente, pk=cliente_id)
        serializer = NotaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        nota = serializer.save(cliente=cliente, user=request.user)
        return self._ok(NotaSerializer(nota).data, status.HTTP_201_CREATED)


class ClienteInteraccionesView(_CRMBaseView):
    def get(self, request, cliente_id: int):
        if not can_view_clientes(request.user):
            return self._forbidden("consultar interacciones")
        cliente = get_object_or_404(Cliente, pk=cliente_id)
        interacciones = cliente.interacciones.select_related("user")
        return self._ok(InteraccionSerializer(interacciones, many=True).data)

    def post(self, request, cliente_id: int):
        if not can_view_clientes(request.user):
            return self._forbidden("registrar interacciones")
        cliente = get_object_or_404(Cliente, pk=cliente_id)
        serializer = InteraccionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        interaccion = serializer.save(cliente=cliente, user=request.user)
        return self._ok(InteraccionSerializer(interaccion).data, status.HTTP_201_CREATED)


class ClienteCotizacionesView(_CRMBaseView):
    def get(self, request, cliente_id: int):
        if not can_view_clientes(request.user):
            return self._forbidden("consultar cotizaciones del cliente")
        cliente = get_object_or_404(Cliente, pk=cliente_id)
        qs = cliente.cotizaciones.select_related("etapa", "vendedor", "sucursal", "cliente").order_by("-created_at")
        return self._ok(CotizacionSerializer(qs, many=True).data)


class ClienteTareasView(_CRMBaseView):
    def get(self, request, cliente_id: int):
        if not can_view_clientes(request.user):
            return self._forbidden("consultar tareas del cliente")
        cliente = get_object_or_404(Cliente, pk=cliente_id)
        qs = cliente.tareas.select_related("cliente").order_by("completada", "fecha_vencimiento")
        return self._ok(TareaSerializer(qs, many=True).data)


# --- Empresas y proveedores -------------------------------------------------


class EmpresasView(_CRMBaseView):
    def get(self, request):
        qs = Empresa.objects.select_related("creado_por")
        q = (request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(
                Q(razon_social_normalizada__icontains=normalizar_nombre(q))
                | Q(nombre_fantasia__icontains=q)
                | Q(cuit__icontains=q)
            )
        return self._paginate(request, qs, EmpresaSerializer)

    def post(self, request):
        serializer = EmpresaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        empresa = serializer.save(creado_por=request.user)
        log_event(request.user, "CREATE", "crm.Empresa", str(empresa.id), {"razon_social": empresa.razon_social})
        return self._ok(EmpresaSerializer(empresa).data, status.HTTP_201_CREATED)


class EmpresasSimpleView(_CRMBaseView):
    def get(self, request):
        qs = Empresa.objects.only("id", "razon_social", "nombre_fantasia", "cuit")[:EMPRESAS_SIMPLE_LIMIT]
        return self._ok(EmpresaSimpleSerializer(qs, many=True).data)


class EmpresaDetailView(_CRMBaseView):
    def get(self, request, empresa_id: int):
        return self._ok(EmpresaSerializer(get_object_or_404(Empresa, pk=empresa_id)).data)

    def put(self, request, empresa_id: int):
        empresa = get_object_or_404(Empresa, pk=empresa_id)
        serializer = EmpresaSerializer(empresa, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        empresa = serializer.save()
        log_event(request.user, "UPDATE", "crm.Empresa", str(empresa.id), {"campos": sorted(request.data.keys())})
        return self._ok(EmpresaSerializer(empresa).data)

    def delete(self, request, empresa_id: int):
        empresa = get_object_or_404(Empresa, pk=empresa_id)
        empresa.delete()
        log_event(request.user, "DELETE", "crm.Empresa", str(empresa_id))
        return Response(status=status.HTTP_204_NO_CONTENT)


class _ProveedorBaseView(_CRMBaseView):
    def _proveedores_qs(self, request):
        qs = Proveedor.objects.select_related("sucursal", "creado_por")
        if is_branch_admin(request.user):
            try:
                sucursal_id = self._optional_id(request.query_params.get("sucursal_id"))
            except (TypeError, ValueError):
                sucursal_id = None
            return qs.filter(sucursal_id=sucursal_id) if sucursal_id else qs
        sucursal = self._sucursal_usuario(request.user)
        if sucursal is None:
            return qs.none()
        return qs.filter(sucursal=sucursal)


class ProveedoresView(_ProveedorBaseView):
    def get(self, request):
        qs = self._proveedores_qs(request)
        q = (request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(
                Q(razon_social_normalizada__icontains=normalizar_nombre(q))
                | Q(cuit__icontains=q)
                | Q(proveedor_id__icontains=q)
            )
        return self._paginate(request, qs, ProveedorSerializer)

    def post(self, request):
        serializer = ProveedorSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        sucursal = None
        if is_branch_admin(request.user) and request.data.get("sucursal_id") not in (None, ""):
            try:
                sucursal_id = self._optional_id(request.data.get("sucursal_id"))
            except (TypeError, ValueError):
                return self._fail("sucursal_id inválido.")
            sucursal = get_object_or_404(Sucursal, pk=sucursal_id)
        if sucursal is None:
            sucursal = self._sucursal_usuario(request.user)
        if sucursal is None:
            return self._fail("El proveedor debe pertenecer a una sucursal.")

        proveedor = serializer.save(sucursal=sucursal, creado_por=request.user)
        log_event(
            request.user,
            "CREATE",
            "crm.Proveedor",
            str(proveedor.id),
            {"razon_social": proveedor.razon_social, "sucursal_id": sucursal.id},
        )
        return self._ok(ProveedorSerializer(proveedor).data, status.HTTP_201_CREATED)


class ProveedorDetailView(_ProveedorBaseView):
    def get(self, request, proveedor_id: int):
        return self._ok(ProveedorSerializer(get_object_or_404(self._proveedores_qs(request), pk=proveedor_id)).data)

    def put(self, request, proveedor_id: int):
        proveedor = get_object_or_404(self._proveedores_qs(request), pk=proveedor_id)
        serializer = ProveedorSerializer(proveedor, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        proveedor = serializer.save()
        log_event(request.user, "UPDATE", "crm.Proveedor", str(proveedor.id), {"campos": sorted(request.data.keys())})
        return self._ok(ProveedorSerializer(proveedor).data)

    def delete(self, request, proveedor_id: int):
        proveedor = get_object_or_404(self._proveedores_qs(request), pk=proveedor_id)
        proveedor.delete()
        log_event(request.user, "DELETE", "crm.Proveedor", str(proveedor_id))
        return Response(status=status.HTTP_204_NO_CONTENT)


# --- Etapas del pipeline ----------------------------------------------------


class EtapasCotizacionView(_CRMBaseView):
    def get(self, request):
        qs = EtapaCotizacion.objects.annotate(leads_count=Count("cotizaciones")).order_by("created_at", "id")
        return self._ok(EtapaCotizacionSerializer(qs, many=True).data)

    def post(self, request):
        if not can_manage_pipeline_stages(request.user):
            return self._forbidden("crear etapas")
        serializer = EtapaCotizacionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        with transaction.atomic():
            etapa = EtapaCotizacion.objects.create(
                nombre=data["nombre"],
                color=data.get("color") or EtapaCotizacion.COLOR_DEFAULT,
            )
            if data.get("campos"):
                FormularioEtapa.objects.create(etapa=etapa, campos=data["campos"])
        log_event(request.user, "CREATE", "crm.EtapaCotizacion", str(etapa.id), {"nombre": etapa.nombre})
        return self._ok(EtapaCotizacionSerializer(etapa).data, status.HTTP_201_CREATED)


class EtapaCotizacionDetailView(_CRMBaseView):
    def put(self, request, etapa_id: int):
        if not can_manage_pipeline_stages(request.user):
            return self._forbidden("editar etapas")
        etapa = get_object_or_404(EtapaCotizacion, pk=etapa_id)
        serializer = EtapaCotizacionSerializer(etapa, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        for field in ("nombre", "color"):
            if field in serializer.validated_data:
                setattr(etapa, field, serializer.validated_data[field])
        etapa.save()
        return self._ok(EtapaCotizacionSerializer(etapa).data)

    def delete(self, request, etapa_id: int):
        if not can_manage_pipeline_stages(request.user):
            return self._forbidden("eliminar etapas")
        etapa = get_object_or_404(EtapaCotizacion, pk=etapa_id)
        leads = etapa.cotizaciones.count()
        if leads:
            return self._fail(
                f"La etapa tiene {leads} cotizaciones; muévelas antes de eliminarla.",
                status.HTTP_409_CONFLICT,
                code="STAGE_HAS_LEADS",
                leads_count=leads,
            )
        nombre = etapa.nombre
        etapa.delete()
        log_event(request.user, "DELETE", "crm.EtapaCotizacion", str(etapa_id), {"nombre": nombre})
        return Response(status=status.HTTP_204_NO_CONTENT)


class FormularioEtapaView(_CRMBaseView):
    def get(self, request, etapa_id: int):
        etapa = get_object_or_404(EtapaCotizacion, pk=etapa_id)
        formulario = FormularioEtapa.objects.filter(etapa=etapa).first()
        if formulario is None:
            return self._ok({"etapa": etapa.id, "campos": [], "updated_at": None})
        return self._ok(FormularioEtapaSerializer(formulario).data)

    def put(self, request, etapa_id: int):
        if not can_manage_pipeline_stages(request.user):
            return self._forbidden("editar formularios de etapa")
        etapa = get_object_or_404(EtapaCotizacion, pk=etapa_id)
        serializer = FormularioEtapaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        formulario, _ = FormularioEtapa.objects.update_or_create(
            etapa=etapa,
            defaults={"campos": serializer.validated_data["campos"]},
        )
        return self._ok(FormularioEtapaSerializer(formulario).data)


# --- Cotizaciones -----------------------------------------------------------


class _CotizacionBaseView(_CRMBaseView):
    def _cotizaciones_qs(self):
        return Cotizacion.objects.select_related("cliente", "vendedor", "etapa", "sucursal")

    def _detalle(self, cotizacion_id: int):
        cotizacion = self._cotizaciones_qs().prefetch_related("historial_etapas").get(pk=cotizacion_id)
        return CotizacionDetalleSerializer(cotizacion).data


class CotizacionesView(_CotizacionBaseView):
    def get(self, request):
        if not can_view_pipeline(request.user):
            return self._forbidden("consultar cotizaciones")
        filterset = CotizacionFilter(request.query_params, queryset=self._cotizaciones_qs())
        if not filterset.is_valid():
            return self._invalid_filters(filterset)
        return self._paginate(request, filterset.qs, CotizacionSerializer, default_limit=500, max_limit=2000)

    def post(self, request):
        if not can_view_pipeline(request.user):
            return self._forbidden("crear cotizaciones")
        serializer = CotizacionCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        cliente = get_object_or_404(Cliente, pk=data["cliente_id"])
        if data.get("sucursal_id"):
            sucursal = get_object_or_404(Sucursal, pk=data["sucursal_id"])
        else:
            sucursal = self._sucursal_usuario(request.user)

        cotizacion = crear_cotizacion(
            cliente=cliente,
            vendedor=request.user,
            monto_total=data.get("monto_total"),
            etapa_id=data.get("etapa_id"),
            sucursal=sucursal,
            nombre=data["nombre"],
            tipo_abertura=data["tipo_abertura"],
            como_nos_conocio=data["como_nos_conocio"],
            detalle=data["detalle"],
            archivos=data["archivos"],
        )
        log_event(
            request.user,
            "CREATE",
            "crm.Cotizacion",
            str(cotizacion.id),
            {"codigo": cotizacion.codigo, "cliente_id": cliente.id, "monto_total": str(cotizacion.monto_total)},
        )
        return self._ok(self._detalle(cotizacion.id), status.HTTP_201_CREATED)


class CotizacionDetailView(_CotizacionBaseView):
    def get(self, request, cotizacion_id: int):
        if not can_view_pipeline(request.user):
            return self._forbidden("consultar cotizaciones")
        get_object_or_404(Cotizacion, pk=cotizacion_id)
        return self._ok(self._detalle(cotizacion_id))

    def put(self, request, cotizacion_id: int):
        if not can_view_pipeline(request.user):
            return self._forbidden("editar cotizaciones")
        cotizacion = get_object_or_404(Cotizacion, pk=cotizacion_id)

        op = request.data.get("op")
        if op:
            if op not in OPERACIONES:
                return self._fail(f"Operación no soportada: {op}")
            aplicar_operacion(cotizacion, op, request.data)
        else:
            serializer = CotizacionUpdateSerializer(cotizacion, data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            serializer.save()
        log_event(request.user, "UPDATE", "crm.Cotizacion", str(cotizacion.id), {"op": op or "campos"})
        return self._ok(self._detalle(cotizacion.id))

    def delete(self, request, cotizacion_id: int):
        if not can_view_pipeline(request.user):
            return self._forbidden("eliminar cotizaciones")
        cotizacion = get_object_or_404(Cotizacion, pk=cotizacion_id)
        codigo = cotizacion.codigo
        cotizacion.delete()
        log_event(request.user, "DELETE", "crm.Cotizacion", str(cotizacion_id), {"codigo": codigo})
        return Response(status=status.HTTP_204_NO_CONTENT)


class CotizacionMoveView(_CotizacionBaseView):
    def post(self, request, cotizacion_id: int):
        if not can_view_pipeline(request.user):
            return self._forbidden("mover cotizaciones")
        cotizacion = get_object_or_404(Cotizacion, pk=cotizacion_id)
        serializer = MoverCotizacionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        etapa = get_object_or_404(EtapaCotizacion, pk=serializer.validated_data["etapa_id"])

        origen = cotizacion.etapa.nombre
        cotizacion = mover_cotizacion(
            cotizacion,
            etapa,
            serializer.validated_data["datos_formulario"],
            monto_total=serializer.validated_data.get("monto_total"),
        )
        log_event(
            request.user,
            "MOVE",
            "crm.Cotizacion",
            str(cotizacion.id),
            {"desde": origen, "hasta": etapa.nombre, "monto_total": str(cotizacion.monto_total)},
        )
        return self._ok(self._detalle(cotizacion.id))


class CotizacionUndoView(_CotizacionBaseView):
    def post(self, request, cotizacion_id: int):
        if not can_view_pipeline(request.user):
            return self._forbidden("deshacer movimientos")
        cotizacion = deshacer_movimiento(get_object_or_404(Cotizacion, pk=cotizacion_id))
        log_event(request.user, "UNDO", "crm.Cotizacion", str(cotizacion.id), {"etapa": cotizacion.etapa.nombre})
        return self._ok(self._detalle(cotizacion.id))


class CotizacionReorderView(_CotizacionBaseView):
    def post(self, request):
        if not can_view_pipeline(request.user):
            return self._forbidden("ordenar cotizaciones")
        serializer = ReordenarSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        etapa = get_object_or_404(EtapaCotizacion, pk=serializer.validated_data["stage_id"])
        actualizadas = reordenar(etapa, serializer.validated_data["ordered_quote_ids"])
        return self._ok({"actualizadas": actualizadas})


# --- Tareas y tablero -------------------------------------------------------


class TareasView(_CRMBaseView):
    def get(self, request):
        raw = (request.query_params.get("date") or "").strip()
        try:
            dia = date.fromisoformat(raw) if raw else timezone.localdate()
        except ValueError:
            return self._fail("date inválida (usa YYYY-MM-DD).")

        qs = Tarea.objects.filter(vendedor_asignado=request.user).select_related("cliente")
        pendientes = qs.filter(completada=False).order_by("fecha_vencimiento", "hora_inicio", "id")
        completadas = qs.filter(completada=True).order_by("-updated_at")[:TAREAS_COMPLETADAS_LIMIT]
        return self._ok(
            {
                "hoy": TareaSerializer(pendientes.filter(fecha_vencimiento=dia), many=True).data,
                "vencidas": TareaSerializer(pendientes.filter(fecha_vencimiento__lt=dia), many=True).data,
                "proximas": TareaSerializer(pendientes.filter(fecha_vencimiento__gt=dia), many=True).data,
                "completadas": TareaSerializer(completadas, many=True).data,
            }
        )

    def post(self, request):
        serializer = TareaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tarea = serializer.save(vendedor_asignado=request.user)
        return self._ok(TareaSerializer(tarea).data, status.HTTP_201_CREATED)


class TareaDetailView(_CRMBaseView):
    def put(self, request, tarea_id: int):
        tarea = get_object_or_404(Tarea, pk=tarea_id, vendedor_asignado=request.user)
        serializer = TareaSerializer(tarea, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        return self._ok(TareaSerializer(serializer.save()).data)

    def delete(self, request, tarea_id: int):
        tarea = get_object_or_404(Tarea, pk=tarea_id, vendedor_asignado=request.user)
        tarea.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class DashboardStatsView(_CRMBaseView):
    def get(self, request):
        hoy = timezone.localdate()
        inicio_mes = hoy.replace(day=1)

        total_cotizado = Cotizacion.objects.aggregate(total=Sum("monto_total"))["total"]
        total_ganado = Cotizacion.objects.filter(cliente__etapa=Cliente.ETAPA_GANADO).aggregate(
            total=Sum("monto_total")
        )["total"]
        motivos = (
            Cliente.objects.filter(etapa=Cliente.ETAPA_PERDIDO)
            .values("motivo_rechazo")
            .annotate(total=Count("id"))
            .order_by("-total", "motivo_rechazo")
        )
        return self._ok(
            {
                "tareas_hoy": Tarea.objects.filter(
                    vendedor_asignado=request.user, completada=False, fecha_vencimiento=hoy
                ).count(),
                "nuevos_clientes_mes": Cliente.objects.filter(created_at__date__gte=inicio_mes).count(),
                "total_cotizado": self._to_decimal(total_cotizado),
                "total_ganado": self._to_decimal(total_ganado),
                "motivos_rechazo": [
                    {"motivo": row["motivo_rechazo"] or "Sin motivo", "total": row["total"]} for row in motivos
                ],
            }
        )
