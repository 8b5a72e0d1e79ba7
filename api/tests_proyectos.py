from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.access import ROLE_ADMINISTRATIVO, ROLE_TECNICO, ROLE_TECNICO_TALLER, ROLE_VENDEDOR, set_user_role
from core.models import AuditLog
from crm.models import Cliente, Cotizacion, EtapaCotizacion
from proyectos.models import Proyecto


def crear_usuario(email, role=None):
    user = get_user_model().objects.create_user(username=email, email=email, password="test12345")
    if role:
        set_user_role(user, role)
    return user


class ProyectosEndpointsTests(APITestCase):
    def setUp(self):
        self.administrativo = crear_usuario("adm@example.com", ROLE_ADMINISTRATIVO)
        self.vendedor = crear_usuario("vendedor@example.com", ROLE_VENDEDOR)
        self.cliente = Cliente.objects.create(nombre_completo="Marta Díaz", telefono="1144443333")
        etapa = EtapaCotizacion.objects.create(nombre="Ganado")
        self.cotizacion = Cotizacion.objects.create(cliente=self.cliente, etapa=etapa, vendedor=self.vendedor)
        self.client.force_authenticate(self.administrativo)

    def test_create_from_cotizacion_inherits_vendedor(self):
        resp = self.client.post(
            reverse("api_proyectos"),
            {"cliente_id": self.cliente.id, "cotizacion_id": self.cotizacion.id},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        data = resp.data["data"]
        self.assertEqual(data["numero_orden"], "OT-00001")
        self.assertEqual(data["vendedor"], self.vendedor.id)
        self.assertEqual(data["cotizacion_codigo"], self.cotizacion.codigo)
        self.assertEqual(data["estado_actual"], Proyecto.ESTADO_VISITA_TECNICA)
        self.assertEqual(data["cliente_telefono"], "1144443333")

    def test_create_without_cotizacion_uses_current_user(self):
        resp = self.client.post(reverse("api_proyectos"), {"cliente_id": self.cliente.id}, format="json")
        self.assertEqual(resp.data["data"]["vendedor"], self.administrativo.id)
        self.assertEqual(resp.data["data"]["cotizacion_codigo"], "")

    def test_cotizacion_must_belong_to_cliente(self):
        otro = Cliente.objects.create(nombre_completo="Otro", telefono="1")
        resp = self.client.post(
            reverse("api_proyectos"), {"cliente_id": otro.id, "cotizacion_id": self.cotizacion.id}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_filters(self):
        Proyecto.objects.create(cliente=self.cliente)
        taller = Proyecto.objects.create(cliente=self.cliente, estado_actual=Proyecto.ESTADO_TALLER)
        otro = Cliente.objects.create(nombre_completo="Bruno", telefono="2")
        Proyecto.objects.create(cliente=otro, estado_actual=Proyecto.ESTADO_COMPLETADO)

        resp = self.client.get(reverse("api_proyectos"), {"estado": Proyecto.ESTADO_TALLER})
        self.assertEqual([p["id"] for p in resp.data["data"]], [taller.id])
        resp = self.client.get(
            reverse("api_proyectos"), {"estados": f"{Proyecto.ESTADO_TALLER},{Proyecto.ESTADO_COMPLETADO}"}
        )
        self.assertEqual(resp.data["count"], 2)
        resp = self.client.get(reverse("api_proyectos"), {"cliente_id": otro.id})
        self.assertEqual(resp.data["count"], 1)
        resp = self.client.get(reverse("api_proyectos"), {"q": "bruno"})
        self.assertEqual(resp.data["count"], 1)
        resp = self.client.get(reverse("api_proyectos"), {"cliente_id": "x"})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_complete_stage_advances_state(self):
        proyecto = Proyecto.objects.create(cliente=self.cliente, estado_actual=Proyecto.ESTADO_MEDICION)
        resp = self.client.put(
            reverse("api_proyecto_detail", args=[proyecto.id]),
            {"etapa_a_completar": "medicion", "datos_formulario": {"estado": "Completado", "enviar_a_verificacion": "Sí"}},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["estado_actual"], Proyecto.ESTADO_VERIFICACION)
        self.assertEqual(resp.data["data"]["medicion"]["estado"], "Completado")
        entry = AuditLog.objects.get(model="proyectos.Proyecto", action="UPDATE")
        self.assertEqual(entry.payload["hasta"], Proyecto.ESTADO_VERIFICACION)

    def test_invalid_stage_data_is_rejected(self):
        proyecto = Proyecto.objects.create(cliente=self.cliente)
        resp = self.client.put(
            reverse("api_proyecto_detail", args=[proyecto.id]),
            {"etapa_a_completar": "logistica", "datos_formulario": {"estado_entrega": "Extraviado"}},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("estado_entrega", resp.data["error"])

        resp = self.client.put(reverse("api_proyecto_detail", args=[proyecto.id]), {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_stage_access_is_checked_per_role(self):
        proyecto = Proyecto.objects.create(cliente=self.cliente)
        self.client.force_authenticate(crear_usuario("taller@example.com", ROLE_TECNICO_TALLER))

        resp = self.client.put(
            reverse("api_proyecto_detail", args=[proyecto.id]),
            {"etapa_a_completar": "visita_tecnica"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        resp = self.client.put(
            reverse("api_proyecto_detail", args=[proyecto.id]),
            {"datos_formulario": {"taller": {"estado_interno": "En proceso"}, "medicion": {"ancho": 1}}},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        resp = self.client.put(
            reverse("api_proyecto_detail", args=[proyecto.id]),
            {"datos_formulario": {"taller": {"estado_interno": "En proceso"}}},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["taller"], {"estado_interno": "En proceso"})
        self.assertEqual(resp.data["data"]["estado_actual"], Proyecto.ESTADO_VISITA_TECNICA)

    def test_set_state_directly_and_delete(self):
        proyecto = Proyecto.objects.create(cliente=self.cliente)
        url = reverse("api_proyecto_detail", args=[proyecto.id])

        resp = self.client.put(url, {"estado_actual": Proyecto.ESTADO_PAUSADO}, format="json")
        self.assertEqual(resp.data["data"]["estado_actual"], Proyecto.ESTADO_PAUSADO)
        resp = self.client.put(url, {"estado_actual": "Inventado"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.delete(url)
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Proyecto.objects.filter(pk=proyecto.id).exists())

    def test_role_without_proyectos_section(self):
        self.client.force_authenticate(self.vendedor)
        self.assertEqual(self.client.get(reverse("api_proyectos")).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(crear_usuario("tec@example.com", ROLE_TECNICO))
        self.assertEqual(self.client.get(reverse("api_proyectos")).status_code, status.HTTP_200_OK)
