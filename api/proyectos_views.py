from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response

from core.access import can_access_proyecto_stage, can_view_proyectos
from core.audit import log_event
from crm.models import Cliente, Cotizacion
from proyectos.models import Proyecto
from proyectos.workflow import actualizar_etapas, cambiar_estado, completar_etapa, resolver_etapa

from .base import EnvelopeAPIView
from .proyectos_serializers import ProyectoCreateSerializer, ProyectoSerializer, ProyectoUpdateSerializer


class _ProyectosBaseView(EnvelopeAPIView):
    def _proyectos_qs(self):
        return Proyecto.objects.select_related("cliente", "cotizacion", "vendedor")


class ProyectosView(_ProyectosBaseView):
    def get(self, request):
        if not can_view_proyectos(request.user):
            return self._forbidden("consultar proyectos")

        qs = self._proyectos_qs()
        estados = [e.strip() for e in (request.query_params.get("estados") or "").split(",") if e.strip()]
        estado = (request.query_params.get("estado") or "").strip()
        if estado:
            estados.append(estado)
        if estados:
            qs = qs.filter(estado_actual__in=estados)
        cliente_id = request.query_params.get("cliente_id")
        if cliente_id:
            try:
                qs = qs.filter(cliente_id=int(cliente_id))
            except (TypeError, ValueError):
                return self._fail("cliente_id inválido.")
        q = (request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(numero_orden__icontains=q) | Q(cliente__nombre_completo__icontains=q))
        return self._paginate(request, qs, ProyectoSerializer)

    def post(self, request):
        if not can_view_proyectos(request.user):
            return self._forbidden("crear proyectos")
        serializer = ProyectoCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cliente = get_object_or_404(Cliente, pk=serializer.validated_data["cliente_id"])
        cotizacion = None
        if serializer.validated_data.get("cotizacion_id"):
            cotizacion = get_object_or_404(Cotizacion, pk=serializer.validated_data["cotizacion_id"], cliente=cliente)

        proyecto = Proyecto.objects.create(
            cliente=cliente,
            cotizacion=cotizacion,
            vendedor=cotizacion.vendedor if cotizacion and cotizacion.vendedor_id else request.user,
            estado_actual=Proyecto.ESTADO_VISITA_TECNICA,
        )
        log_event(
            request.user,
            "CREATE",
            "proyectos.Proyecto",
            str(proyecto.id),
            {"numero_orden": proyecto.numero_orden, "cliente_id": cliente.id},
        )
        return self._ok(ProyectoSerializer(proyecto).data, status.HTTP_201_CREATED)


class ProyectoDetailView(_ProyectosBaseView):
    def get(self, request, proyecto_id: int):
        if not can_view_proyectos(request.user):
            return self._forbidden("consultar proyectos")
        return self._ok(ProyectoSerializer(get_object_or_404(self._proyectos_qs(), pk=proyecto_id)).data)

    def put(self, request, proyecto_id: int):
        if not can_view_proyectos(request.user):
            return self._forbidden("editar proyectos")
        proyecto = get_object_or_404(Proyecto, pk=proyecto_id)
        serializer = ProyectoUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data.get("etapa_a_completar"):
            etapa = resolver_etapa(data["etapa_a_completar"])
            if not can_access_proyecto_stage(request.user, etapa):
                return self._forbidden(f"completar la etapa {etapa}")
            anterior = proyecto.estado_actual
            proyecto = completar_etapa(proyecto, etapa, data["datos_formulario"], data.get("forzar_estado"))
            payload = {"etapa": etapa, "desde": anterior, "hasta": proyecto.estado_actual}
        elif "datos_formulario" in data:
            etapas = [resolver_etapa(nombre) for nombre in data["datos_formulario"]]
            sin_acceso = [etapa for etapa in etapas if not can_access_proyecto_stage(request.user, etapa)]
            if sin_acceso:
                return self._forbidden(f"editar la etapa {sin_acceso[0]}")
            proyecto = actualizar_etapas(proyecto, data["datos_formulario"])
            payload = {"etapas": etapas}
        else:
            anterior = proyecto.estado_actual
            proyecto = cambiar_estado(proyecto, data["estado_actual"])
            payload = {"desde": anterior, "hasta": proyecto.estado_actual}

        log_event(request.user, "UPDATE", "proyectos.Proyecto", str(proyecto.id), payload)
        return self._ok(ProyectoSerializer(self._proyectos_qs().get(pk=proyecto.pk)).data)

    def delete(self, request, proyecto_id: int):
        if not can_view_proyectos(request.user):
            return self._forbidden("eliminar proyectos")
        proyecto = get_object_or_404(Proyecto, pk=proyecto_id)
        numero = proyecto.numero_orden
        proyecto.delete()
        log_event(request.user, "DELETE", "proyectos.Proyecto", str(proyecto_id), {"numero_orden": numero})
        return Response(status=status.HTTP_204_NO_CONTENT)
