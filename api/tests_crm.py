from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from core.access import ROLE_ADMIN, ROLE_DEPOSITO, ROLE_TECNICO, ROLE_VENDEDOR, set_user_role
from core.models import AuditLog, Sucursal, UserProfile
from crm.models import Cliente, Cotizacion, EtapaCotizacion, Interaccion, Proveedor, Tarea
from proyectos.models import Proyecto


def crear_usuario(email, role=None):
    user = get_user_model().objects.create_user(username=email, email=email, password="test12345")
    if role:
        set_user_role(user, role)
    return user


class ClientesEndpointsTests(APITestCase):
    def setUp(self):
        self.vendedor = crear_usuario("vendedor@example.com", ROLE_VENDEDOR)
        self.client.force_authenticate(self.vendedor)

    def test_create_and_list_clientes(self):
        resp = self.client.post(
            reverse("api_clientes"),
            {"nombre_completo": "  Ana   Gómez ", "telefono": "1155550000", "email": "ANA@EXAMPLE.COM", "prioridad": "alta"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        data = resp.data["data"]
        self.assertEqual(data["nombre_completo"], "Ana Gómez")
        self.assertEqual(data["email"], "ana@example.com")
        self.assertEqual(data["prioridad"], "Alta")
        self.assertEqual(data["etapa"], Cliente.ETAPA_NUEVO)
        self.assertEqual(data["vendedor_asignado"], self.vendedor.id)

        Cliente.objects.create(nombre_completo="Bruno Paz", telefono="2222", etapa=Cliente.ETAPA_GANADO)
        resp = self.client.get(reverse("api_clientes"), {"q": "ana"})
        self.assertEqual(resp.data["count"], 1)
        resp = self.client.get(reverse("api_clientes"), {"etapa": "ganado"})
        self.assertEqual([c["nombre_completo"] for c in resp.data["data"]], ["Bruno Paz"])

    def test_list_paginates(self):
        for i in range(3):
            Cliente.objects.create(nombre_completo=f"Cliente {i}", telefono=str(i))
        resp = self.client.get(reverse("api_clientes"), {"limit": 2, "offset": 1})
        self.assertEqual(resp.data["count"], 3)
        self.assertEqual(resp.data["limit"], 2)
        self.assertEqual(resp.data["offset"], 1)
        self.assertEqual(len(resp.data["data"]), 2)

    def test_detail_includes_ultimo_contacto_and_ultima_cotizacion(self):
        cliente = Cliente.objects.create(nombre_completo="Carla", telefono="3333")
        etapa = EtapaCotizacion.objects.create(nombre="Contacto inicial")
        Cotizacion.objects.create(cliente=cliente, etapa=etapa, monto_total=Decimal("1000"))
        Cotizacion.objects.create(cliente=cliente, etapa=etapa, monto_total=Decimal("2500"))
        fecha = timezone.now() - timedelta(days=1)
        Interaccion.objects.create(cliente=cliente, tipo=Interaccion.TIPO_LLAMADA, nota="Llamó", fecha=fecha)

        resp = self.client.get(reverse("api_cliente_detail", args=[cliente.id]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(resp.data["data"]["ultima_cotizacion_monto"]), Decimal("2500"))
        self.assertIsNotNone(resp.data["data"]["ultimo_contacto"])

    def test_update_and_delete(self):
        cliente = Cliente.objects.create(nombre_completo="Dario", telefono="4444")
        resp = self.client.put(
            reverse("api_cliente_detail", args=[cliente.id]),
            {"etapa": Cliente.ETAPA_PERDIDO, "motivo_rechazo": "Precio"},
            format="json",
        )
        self.assertEqual(resp.data["data"]["motivo_rechazo"], "Precio")

        Proyecto.objects.create(cliente=cliente)
        resp = self.client.delete(reverse("api_cliente_detail", args=[cliente.id]))
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

        otro = Cliente.objects.create(nombre_completo="Eva", telefono="5555")
        resp = self.client.delete(reverse("api_cliente_detail", args=[otro.id]))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.assertTrue(AuditLog.objects.filter(action="DELETE", model="crm.Cliente").exists())

    def test_validation_error_envelope(self):
        resp = self.client.post(reverse("api_clientes"), {"nombre_completo": "Sin teléfono"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(resp.data["success"])
        self.assertTrue(resp.data["error"].startswith("telefono:"))
        self.assertIn("telefono", resp.data["details"])

    def test_role_without_clientes_section_is_forbidden(self):
        self.client.force_authenticate(crear_usuario("dep@example.com", ROLE_DEPOSITO))
        resp = self.client.get(reverse("api_clientes"))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(resp.data["error"], "No tienes permisos para consultar clientes.")

    def test_import_json_and_csv(self):
        resp = self.client.post(
            reverse("api_clientes_import"),
            {"clientes": [{"nombre": "Fer", "telefono": "1"}, {"nombre": "Sin tel"}]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["data"], {"insertados": 1, "omitidos": 1})

        archivo = SimpleUploadedFile("clientes.csv", "Nombre,Teléfono\nGabi,22\n".encode("utf-8"), content_type="text/csv")
        resp = self.client.post(reverse("api_clientes_import"), {"file": archivo}, format="multipart")
        self.assertEqual(resp.data["data"], {"insertados": 1, "omitidos": 0})
        self.assertEqual(Cliente.objects.get(nombre_completo="Gabi").vendedor_asignado, self.vendedor)

        archivo = SimpleUploadedFile("clientes.txt", b"x", content_type="text/plain")
        resp = self.client.post(reverse("api_clientes_import"), {"file": archivo}, format="multipart")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.post(reverse("api_clientes_import"), {"clientes": "no"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_notas_interacciones_and_prioridades(self):
        cliente = Cliente.objects.create(nombre_completo="Hugo", telefono="6666", prioridad="VIP")
        resp = self.client.post(reverse("api_cliente_notas", args=[cliente.id]), {"contenido": "   "}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        resp = self.client.post(
            reverse("api_cliente_notas", args=[cliente.id]), {"contenido": "Quiere DVH"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["data"]["user"], self.vendedor.id)

        resp = self.client.post(
            reverse("api_cliente_interacciones", args=[cliente.id]),
            {"tipo": Interaccion.TIPO_WHATSAPP, "nota": "Envió fotos"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        resp = self.client.get(reverse("api_cliente_interacciones", args=[cliente.id]))
        self.assertEqual(len(resp.data["data"]), 1)

        resp = self.client.get(reverse("api_clientes_prioridades"))
        self.assertIn("VIP", resp.data["data"])

    def test_import_corrupt_files_are_rejected(self):
        archivo = SimpleUploadedFile("clientes.xlsx", b"not a zip file", content_type="application/octet-stream")
        resp = self.client.post(reverse("api_clientes_import"), {"file": archivo}, format="multipart")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(resp.data["success"])
        self.assertIn("XLSX", resp.data["error"])

        archivo = SimpleUploadedFile("clientes.csv", "Nombre,Teléfono\nÑandú,1\n".encode("latin-1"), content_type="text/csv")
        resp = self.client.post(reverse("api_clientes_import"), {"file": archivo}, format="multipart")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["error"], "El CSV debe estar en UTF-8.")
        self.assertFalse(Cliente.objects.exists())

    def test_client_subresources_require_clientes_section(self):
        cliente = Cliente.objects.create(nombre_completo="Hugo", telefono="6666")
        self.client.force_authenticate(crear_usuario("tec@example.com", ROLE_TECNICO))

        urls = [
            reverse("api_cliente_detail", args=[cliente.id]),
            reverse("api_cliente_notas", args=[cliente.id]),
            reverse("api_cliente_interacciones", args=[cliente.id]),
            reverse("api_cliente_cotizaciones", args=[cliente.id]),
            reverse("api_cliente_tareas", args=[cliente.id]),
            reverse("api_clientes_prioridades"),
        ]
        for url in urls:
            self.assertEqual(self.client.get(url).status_code, status.HTTP_403_FORBIDDEN, url)

        resp = self.client.post(reverse("api_cliente_notas", args=[cliente.id]), {"contenido": "x"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        resp = self.client.post(
            reverse("api_cliente_interacciones", args=[cliente.id]),
            {"tipo": Interaccion.TIPO_LLAMADA, "nota": "x"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(cliente.notas_cliente.exists())
        self.assertFalse(cliente.interacciones.exists())


class EmpresasProveedoresEndpointsTests(APITestCase):
    def setUp(self):
        self.admin = crear_usuario("admin@example.com", ROLE_ADMIN)
        self.norte = Sucursal.objects.create(nombre="Norte", direccion="Ruta 8")
        self.sur = Sucursal.objects.create(nombre="Sur", direccion="Ruta 3")
        self.client.force_authenticate(self.admin)

    def test_empresas_crud_and_search(self):
        resp = self.client.post(
            reverse("api_empresas"),
            {"razon_social": "Constructora Andina SRL", "cuit": "30-71234567-8"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        empresa_id = resp.data["data"]["id"]

        resp = self.client.get(reverse("api_empresas"), {"q": "andina"})
        self.assertEqual(resp.data["count"], 1)
        resp = self.client.get(reverse("api_empresas_simple"))
        self.assertEqual(resp.data["data"][0]["razon_social"], "Constructora Andina SRL")

        resp = self.client.put(reverse("api_empresa_detail", args=[empresa_id]), {"localidad": "Mendoza"}, format="json")
        self.assertEqual(resp.data["data"]["localidad"], "Mendoza")
        resp = self.client.delete(reverse("api_empresa_detail", args=[empresa_id]))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)

    def test_proveedor_requires_cuit_and_sucursal(self):
        resp = self.client.post(reverse("api_proveedores"), {"razon_social": "Herrajes SA"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.post(
            reverse("api_proveedores"), {"razon_social": "Herrajes SA", "cuit": "30-1-2"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["error"], "El proveedor debe pertenecer a una sucursal.")

        resp = self.client.post(
            reverse("api_proveedores"),
            {"razon_social": "Herrajes SA", "cuit": "30-1-2", "sucursal_id": self.sur.id},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["data"]["sucursal"], self.sur.id)

    def test_proveedores_are_scoped_by_sucursal(self):
        Proveedor.objects.create(razon_social="Vidrios Norte", cuit="1", sucursal=self.norte)
        Proveedor.objects.create(razon_social="Vidrios Sur", cuit="2", sucursal=self.sur)

        resp = self.client.get(reverse("api_proveedores"))
        self.assertEqual(resp.data["count"], 2)
        resp = self.client.get(reverse("api_proveedores"), {"sucursal_id": self.sur.id})
        self.assertEqual([p["razon_social"] for p in resp.data["data"]], ["Vidrios Sur"])

        vendedor = crear_usuario("v@example.com", ROLE_VENDEDOR)
        self.client.force_authenticate(vendedor)
        self.assertEqual(self.client.get(reverse("api_proveedores")).data["count"], 0)

        profile = UserProfile.de_usuario(vendedor)
        profile.sucursal = self.norte
        profile.save()
        resp = self.client.get(reverse("api_proveedores"), {"sucursal_id": self.sur.id})
        self.assertEqual([p["razon_social"] for p in resp.data["data"]], ["Vidrios Norte"])

        resp = self.client.post(reverse("api_proveedores"), {"razon_social": "Perfiles", "cuit": "3"}, format="json")
        self.assertEqual(resp.data["data"]["sucursal"], self.norte.id)


class TareasDashboardEndpointsTests(APITestCase):
    def setUp(self):
        self.vendedor = crear_usuario("vendedor@example.com", ROLE_VENDEDOR)
        self.otro = crear_usuario("otro@example.com", ROLE_VENDEDOR)
        self.client.force_authenticate(self.vendedor)
        self.hoy = timezone.localdate()

    def _tarea(self, titulo, dias=0, completada=False, user=None):
        return Tarea.objects.create(
            titulo=titulo,
            fecha_vencimiento=self.hoy + timedelta(days=dias),
            completada=completada,
            vendedor_asignado=user or self.vendedor,
        )

    def test_tareas_grouped_by_due_date(self):
        self._tarea("hoy")
        self._tarea("ayer", dias=-1)
        self._tarea("mañana", dias=1)
        self._tarea("hecha", completada=True)
        self._tarea("ajena", user=self.otro)

        resp = self.client.get(reverse("api_tareas"))
        data = resp.data["data"]
        self.assertEqual([t["titulo"] for t in data["hoy"]], ["hoy"])
        self.assertEqual([t["titulo"] for t in data["vencidas"]], ["ayer"])
        self.assertEqual([t["titulo"] for t in data["proximas"]], ["mañana"])
        self.assertEqual([t["titulo"] for t in data["completadas"]], ["hecha"])

        resp = self.client.get(reverse("api_tareas"), {"date": "31-12-2024"})
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_update_and_delete_own_tareas(self):
        resp = self.client.post(
            reverse("api_tareas"),
            {"titulo": "Visitar obra", "fecha_vencimiento": self.hoy.isoformat(), "hora_inicio": "10:00", "hora_fin": "09:00"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.post(
            reverse("api_tareas"),
            {"titulo": "Visitar obra", "fecha_vencimiento": self.hoy.isoformat(), "prioridad": Tarea.PRIORIDAD_ALTA},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        tarea_id = resp.data["data"]["id"]

        resp = self.client.put(reverse("api_tarea_detail", args=[tarea_id]), {"completada": True}, format="json")
        self.assertTrue(resp.data["data"]["completada"])

        ajena = self._tarea("ajena", user=self.otro)
        resp = self.client.delete(reverse("api_tarea_detail", args=[ajena.id]))
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        resp = self.client.delete(reverse("api_tarea_detail", args=[tarea_id]))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)

    def test_dashboard_stats(self):
        etapa = EtapaCotizacion.objects.create(nombre="Contacto inicial")
        ganado = Cliente.objects.create(nombre_completo="Ganado", telefono="1", etapa=Cliente.ETAPA_GANADO)
        abierto = Cliente.objects.create(nombre_completo="Abierto", telefono="2")
        Cliente.objects.create(
            nombre_completo="Perdido", telefono="3", etapa=Cliente.ETAPA_PERDIDO, motivo_rechazo="Precio"
        )
        Cotizacion.objects.create(cliente=ganado, etapa=etapa, monto_total=Decimal("3000"))
        Cotizacion.objects.create(cliente=abierto, etapa=etapa, monto_total=Decimal("1000"))
        self._tarea("hoy")

        data = self.client.get(reverse("api_dashboard_stats")).data["data"]
        self.assertEqual(data["tareas_hoy"], 1)
        self.assertEqual(data["nuevos_clientes_mes"], 3)
        self.assertEqual(data["total_cotizado"], Decimal("4000"))
        self.assertEqual(data["total_ganado"], Decimal("3000"))
        self.assertEqual(data["motivos_rechazo"], [{"motivo": "Precio", "total": 1}])
