from decimal import Decimal

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.access import ROLE_GERENTE, ROLE_TECNICO, ROLE_VENDEDOR, set_user_role
from core.models import AuditLog, Sucursal, UserProfile
from crm.models import Cliente, Cotizacion, EtapaCotizacion, FormularioEtapa, Tarea


def crear_usuario(email, role=None):
    user = get_user_model().objects.create_user(username=email, email=email, password="test12345", first_name="Vale")
    if role:
        set_user_role(user, role)
    return user


class EtapasEndpointsTests(APITestCase):
    def setUp(self):
        self.gerente = crear_usuario("gerente@example.com", ROLE_GERENTE)
        self.client.force_authenticate(self.gerente)

    def test_create_stage_with_form(self):
        resp = self.client.post(
            reverse("api_etapas_cotizacion"),
            {
                "nombre": "Presupuesto enviado",
                "color": "#60a5fa",
                "campos": [{"titulo": "Precio", "tipo": "precio", "requerido": True}],
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        etapa_id = resp.data["data"]["id"]
        self.assertEqual(FormularioEtapa.objects.get(etapa_id=etapa_id).campos[0]["titulo"], "Precio")

        resp = self.client.get(reverse("api_formulario_etapa", args=[etapa_id]))
        self.assertEqual(resp.data["data"]["campos"][0]["tipo"], "precio")

        resp = self.client.put(
            reverse("api_formulario_etapa", args=[etapa_id]),
            {"campos": [{"titulo": "Canal", "tipo": "seleccion", "opciones": ["Mail", "WhatsApp"]}]},
            format="json",
        )
        self.assertEqual(resp.data["data"]["campos"][0]["opciones"], ["Mail", "WhatsApp"])

        resp = self.client.put(
            reverse("api_formulario_etapa", args=[etapa_id]),
            {"campos": [{"titulo": "X", "tipo": "dibujo"}]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_form_of_stage_without_form_is_empty(self):
        etapa = EtapaCotizacion.objects.create(nombre="Ganado")
        resp = self.client.get(reverse("api_formulario_etapa", args=[etapa.id]))
        self.assertEqual(resp.data["data"]["campos"], [])

    def test_delete_stage_with_leads_is_rejected(self):
        etapa = EtapaCotizacion.objects.create(nombre="Negociación")
        cliente = Cliente.objects.create(nombre_completo="Ana", telefono="1")
        Cotizacion.objects.create(cliente=cliente, etapa=etapa)

        resp = self.client.get(reverse("api_etapas_cotizacion"))
        self.assertEqual(resp.data["data"][0]["leads_count"], 1)

        resp = self.client.delete(reverse("api_etapa_cotizacion_detail", args=[etapa.id]))
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.data["code"], "STAGE_HAS_LEADS")
        self.assertEqual(resp.data["leads_count"], 1)

        vacia = EtapaCotizacion.objects.create(nombre="Vacía")
        resp = self.client.delete(reverse("api_etapa_cotizacion_detail", args=[vacia.id]))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)

    def test_stage_name_differing_only_in_spacing_is_duplicate(self):
        EtapaCotizacion.objects.create(nombre="Contacto inicial")
        resp = self.client.post(reverse("api_etapas_cotizacion"), {"nombre": "Contacto  inicial "}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("nombre", resp.data["details"])
        resp = self.client.post(reverse("api_etapas_cotizacion"), {"nombre": "CONTACTO INICIAL"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(EtapaCotizacion.objects.count(), 1)

        otra = EtapaCotizacion.objects.create(nombre="Medición")
        resp = self.client.put(
            reverse("api_etapa_cotizacion_detail", args=[otra.id]), {"nombre": "contacto   inicial"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        resp = self.client.put(
            reverse("api_etapa_cotizacion_detail", args=[otra.id]), {"nombre": "Medición  final"}, format="json"
        )
        self.assertEqual(resp.data["data"]["nombre"], "Medición final")

    def test_rename_stage(self):
        etapa = EtapaCotizacion.objects.create(nombre="Vieja")
        resp = self.client.put(
            reverse("api_etapa_cotizacion_detail", args=[etapa.id]), {"nombre": "Nueva", "color": "#000"}, format="json"
        )
        self.assertEqual(resp.data["data"]["nombre"], "Nueva")
        self.assertEqual(resp.data["data"]["color"], "#000")

    def test_vendedor_cannot_manage_stages(self):
        self.client.force_authenticate(crear_usuario("v@example.com", ROLE_VENDEDOR))
        resp = self.client.post(reverse("api_etapas_cotizacion"), {"nombre": "Nueva"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get(reverse("api_etapas_cotizacion")).status_code, status.HTTP_200_OK)


class CotizacionesEndpointsTests(APITestCase):
    def setUp(self):
        self.vendedor = crear_usuario("vendedor@example.com", ROLE_VENDEDOR)
        self.sucursal = Sucursal.objects.create(nombre="Centro", direccion="Calle 1")
        profile = UserProfile.de_usuario(self.vendedor)
        profile.sucursal = self.sucursal
        profile.save()
        self.inicial = EtapaCotizacion.objects.create(nombre="Contacto inicial")
        self.presupuesto = EtapaCotizacion.objects.create(nombre="Presupuesto enviado")
        self.cliente = Cliente.objects.create(nombre_completo="Ana Gómez", telefono="1155550000")
        self.client.force_authenticate(self.vendedor)

    def _crear(self, **extra):
        payload = {"cliente_id": self.cliente.id, "monto_total": "150000.00", **extra}
        resp = self.client.post(reverse("api_cotizaciones"), payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        return resp.data["data"]

    def test_create_cotizacion(self):
        data = self._crear(tipo_abertura="Puerta", como_nos_conocio="Google")

        self.assertEqual(data["codigo"], "COT-001")
        self.assertEqual(data["etapa"], self.inicial.id)
        self.assertEqual(data["vendedor"], self.vendedor.id)
        self.assertEqual(data["sucursal"], self.sucursal.id)
        self.assertEqual(data["vendedor_nombre"], "Vale")
        self.assertEqual(len(data["historial"]), 1)
        self.assertTrue(Tarea.objects.filter(cliente=self.cliente, vendedor_asignado=self.vendedor).exists())
        self.assertTrue(AuditLog.objects.filter(action="CREATE", model="crm.Cotizacion").exists())

    def test_create_for_missing_cliente(self):
        resp = self.client.post(reverse("api_cotizaciones"), {"cliente_id": 999}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(resp.data["success"])

    def test_create_without_stages_is_a_domain_error(self):
        EtapaCotizacion.objects.all().delete()
        resp = self.client.post(reverse("api_cotizaciones"), {"cliente_id": self.cliente.id}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["error"], "No hay etapas de cotización configuradas.")

    def test_move_and_undo(self):
        data = self._crear()
        resp = self.client.post(
            reverse("api_cotizacion_move", args=[data["id"]]),
            {"etapa_id": self.presupuesto.id, "datos_formulario": {"Precio": "180.000,00"}},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["etapa"], self.presupuesto.id)
        self.assertEqual(Decimal(resp.data["data"]["monto_total"]), Decimal("180000"))
        self.assertEqual(len(resp.data["data"]["historial"]), 2)

        resp = self.client.post(reverse("api_cotizacion_undo", args=[data["id"]]))
        self.assertEqual(resp.data["data"]["etapa"], self.inicial.id)
        self.assertEqual(Decimal(resp.data["data"]["monto_total"]), Decimal("150000"))
        self.assertEqual(
            list(AuditLog.objects.filter(model="crm.Cotizacion").values_list("action", flat=True).order_by("id")),
            ["CREATE", "MOVE", "UNDO"],
        )

        resp = self.client.post(reverse("api_cotizacion_undo", args=[data["id"]]))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["error"], "No hay acciones para deshacer.")

    def test_move_with_out_of_range_form_price(self):
        data = self._crear()
        resp = self.client.post(
            reverse("api_cotizacion_move", args=[data["id"]]),
            {"etapa_id": self.presupuesto.id, "datos_formulario": {"precio": "9999999999999999999999"}},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(resp.data["error"].startswith("Monto fuera de rango"))
        self.assertFalse(AuditLog.objects.filter(action="MOVE").exists())

        resp = self.client.get(reverse("api_cotizacion_detail", args=[data["id"]]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["etapa"], self.inicial.id)
        self.assertEqual(self.client.get(reverse("api_cotizaciones")).status_code, status.HTTP_200_OK)

        resp = self.client.post(
            reverse("api_cotizacion_move", args=[data["id"]]),
            {"etapa_id": self.presupuesto.id, "monto_total": "-1"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_move_with_explicit_amount(self):
        data = self._crear()
        resp = self.client.post(
            reverse("api_cotizacion_move", args=[data["id"]]),
            {"etapa_id": self.presupuesto.id, "monto_total": "99.50", "datos_formulario": {"Precio": "1"}},
            format="json",
        )
        self.assertEqual(Decimal(resp.data["data"]["monto_total"]), Decimal("99.50"))

    def test_update_fields_and_operations(self):
        data = self._crear()
        url = reverse("api_cotizacion_detail", args=[data["id"]])

        resp = self.client.put(url, {"nombre": "Obra Palermo", "monto_total": "2000"}, format="json")
        self.assertEqual(resp.data["data"]["nombre"], "Obra Palermo")

        resp = self.client.put(url, {"op": "addPago", "item": {"monto": 500, "medio": "transferencia"}}, format="json")
        pago = resp.data["data"]["pagos"][0]
        self.assertEqual(pago["medio"], "transferencia")

        resp = self.client.put(url, {"op": "removePago", "uid": pago["uid"]}, format="json")
        self.assertEqual(resp.data["data"]["pagos"], [])

        resp = self.client.put(url, {"op": "explotar"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        resp = self.client.put(url, {"op": "addImagen"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reorder_and_delete(self):
        a = self._crear()
        b = self._crear()
        resp = self.client.post(
            reverse("api_cotizaciones_reorder"),
            {"stage_id": self.presupuesto.id, "ordered_quote_ids": [b["id"], a["id"]]},
            format="json",
        )
        self.assertEqual(resp.data["data"], {"actualizadas": 2})
        self.assertEqual(Cotizacion.objects.get(pk=b["id"]).orden, 0)
        self.assertEqual(Cotizacion.objects.get(pk=a["id"]).etapa, self.presupuesto)

        resp = self.client.delete(reverse("api_cotizacion_detail", args=[a["id"]]))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)

    def test_list_filters(self):
        self._crear()
        otro_cliente = Cliente.objects.create(nombre_completo="Bruno Paz", telefono="2")
        self._crear(cliente_id=otro_cliente.id, etapa_id=self.presupuesto.id)

        resp = self.client.get(reverse("api_cotizaciones"))
        self.assertEqual(resp.data["count"], 2)
        self.assertEqual(resp.data["limit"], 500)

        resp = self.client.get(reverse("api_cotizaciones"), {"etapa_id": self.presupuesto.id})
        self.assertEqual([c["cliente_nombre"] for c in resp.data["data"]], ["Bruno Paz"])
        resp = self.client.get(reverse("api_cotizaciones"), {"search_term": "cot-001"})
        self.assertEqual([c["cliente_nombre"] for c in resp.data["data"]], ["Ana Gómez"])
        resp = self.client.get(reverse("api_cotizaciones"), {"fecha_desde": "2999-01-01"})
        self.assertEqual(resp.data["count"], 0)

        resp = self.client.get(reverse("api_cotizaciones"), {"fecha_desde": "ayer"})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("fecha_desde", resp.data["details"])

    def test_cliente_cotizaciones(self):
        self._crear()
        resp = self.client.get(reverse("api_cliente_cotizaciones", args=[self.cliente.id]))
        self.assertEqual(len(resp.data["data"]), 1)
        resp = self.client.get(reverse("api_cliente_tareas", args=[self.cliente.id]))
        self.assertEqual(len(resp.data["data"]), 1)

    def test_role_without_pipeline_is_forbidden(self):
        self.client.force_authenticate(crear_usuario("tec@example.com", ROLE_TECNICO))
        resp = self.client.get(reverse("api_cotizaciones"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
