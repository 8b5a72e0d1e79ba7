import tempfile
from datetime import timedelta
from decimal import Decimal
from io import BytesIO, StringIO
from pathlib import Path

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone
from openpyxl import Workbook

from core.models import AuditLog
from crm.importacion import ImportacionError, fila_a_cliente, importar_clientes, leer_archivo
from crm.models import Cliente, Cotizacion, EtapaCotizacion, FormularioEtapa, HistorialEtapa, Tarea
from crm.pipeline import (
    PRECIO_ANTERIOR_KEY,
    PRECIO_NUEVO_KEY,
    PipelineError,
    aplicar_operacion,
    crear_cotizacion,
    deshacer_movimiento,
    etapa_inicial,
    mover_cotizacion,
    parse_monto,
    precio_desde_formulario,
    reordenar,
)


class PipelineTests(TestCase):
    def setUp(self):
        self.vendedor = get_user_model().objects.create_user(
            username="vendedor@example.com", first_name="Laura", password="test12345"
        )
        self.presupuesto = EtapaCotizacion.objects.create(nombre="Presupuesto enviado")
        self.inicial = EtapaCotizacion.objects.create(nombre="Contacto inicial")
        self.ganado = EtapaCotizacion.objects.create(nombre="Ganado")
        self.cliente = Cliente.objects.create(nombre_completo="Ana Gómez", telefono="1155550000")

    def test_crear_cotizacion_en_etapa_inicial_con_historial_y_tarea(self):
        cotizacion = crear_cotizacion(
            cliente=self.cliente,
            vendedor=self.vendedor,
            monto_total=Decimal("150000"),
            tipo_abertura="Ventana PVC",
            como_nos_conocio="Instagram",
        )

        self.assertEqual(cotizacion.etapa, self.inicial)
        self.assertEqual(cotizacion.codigo, "COT-001")
        self.assertIn("Tipo de Abertura: Ventana PVC", cotizacion.detalle)
        historial = cotizacion.historial_etapas.get()
        self.assertEqual(historial.etapa_nombre, "Contacto inicial")
        self.assertEqual(historial.datos_formulario[PRECIO_ANTERIOR_KEY], 0)
        self.assertEqual(historial.datos_formulario[PRECIO_NUEVO_KEY], 150000)

        tarea = Tarea.objects.get(cliente=self.cliente)
        self.assertEqual(tarea.vendedor_asignado, self.vendedor)
        self.assertEqual(tarea.fecha_vencimiento, timezone.localdate() + timedelta(days=3))
        self.assertIn("COT-001", tarea.titulo)

    def test_etapa_inicial_sin_contacto_inicial_usa_la_primera(self):
        self.inicial.delete()
        self.assertEqual(etapa_inicial(), self.presupuesto)

    def test_etapa_inicial_sin_etapas(self):
        EtapaCotizacion.objects.all().delete()
        with self.assertRaises(PipelineError):
            etapa_inicial()
        with self.assertRaises(PipelineError):
            etapa_inicial(999)

    def test_mover_toma_el_precio_del_formulario_y_deshacer_lo_restaura(self):
        cotizacion = crear_cotizacion(cliente=self.cliente, vendedor=None, monto_total=Decimal("1000"))
        mover_cotizacion(cotizacion, self.presupuesto, {"Precio final": "$ 1.250,50"})
        cotizacion.refresh_from_db()

        self.assertEqual(cotizacion.etapa, self.presupuesto)
        self.assertEqual(cotizacion.monto_total, Decimal("1250.50"))
        ultimo = cotizacion.historial_etapas.order_by("-id").first()
        self.assertEqual(ultimo.datos_formulario[PRECIO_ANTERIOR_KEY], 1000)

        deshacer_movimiento(cotizacion)
        cotizacion.refresh_from_db()
        self.assertEqual(cotizacion.etapa, self.inicial)
        self.assertEqual(cotizacion.monto_total, Decimal("1000"))
        self.assertEqual(cotizacion.historial_etapas.count(), 1)

        with self.assertRaisesMessage(PipelineError, "No hay acciones para deshacer"):
            deshacer_movimiento(cotizacion)

    def test_mover_con_precio_fuera_de_rango_no_escribe_nada(self):
        cotizacion = crear_cotizacion(cliente=self.cliente, vendedor=None, monto_total=Decimal("1000"))
        for precio in ["9999999999999999999999", "-500", 1e300]:
            with self.assertRaises(PipelineError):
                mover_cotizacion(cotizacion, self.presupuesto, {"Precio": precio})

        cotizacion.refresh_from_db()
        self.assertEqual(cotizacion.etapa, self.inicial)
        self.assertEqual(cotizacion.monto_total, Decimal("1000"))
        self.assertEqual(cotizacion.historial_etapas.count(), 1)

    def test_precio_del_formulario_se_redondea_a_centavos(self):
        cotizacion = crear_cotizacion(cliente=self.cliente, vendedor=None)
        mover_cotizacion(cotizacion, self.presupuesto, {"precio": "1250,555"})
        cotizacion.refresh_from_db()
        self.assertEqual(cotizacion.monto_total, Decimal("1250.56"))
        self.assertEqual(precio_desde_formulario({"precio": "999999999999,99"}), Decimal("999999999999.99"))

    def test_mover_sin_precio_conserva_el_monto(self):
        cotizacion = crear_cotizacion(cliente=self.cliente, vendedor=None, monto_total=Decimal("800"))
        mover_cotizacion(cotizacion, self.ganado, {"comentario": "cerrado"})
        cotizacion.refresh_from_db()
        self.assertEqual(cotizacion.monto_total, Decimal("800"))

    def test_deshacer_con_etapa_previa_eliminada(self):
        temporal = EtapaCotizacion.objects.create(nombre="Temporal")
        cotizacion = crear_cotizacion(cliente=self.cliente, vendedor=None, etapa_id=temporal.id)
        mover_cotizacion(cotizacion, self.ganado)
        temporal.delete()

        with self.assertRaisesMessage(PipelineError, "Temporal"):
            deshacer_movimiento(cotizacion)

    def test_reordenar_asigna_etapa_y_orden(self):
        a = crear_cotizacion(cliente=self.cliente, vendedor=None)
        b = crear_cotizacion(cliente=self.cliente, vendedor=None)

        self.assertEqual(reordenar(self.ganado, [b.id, a.id]), 2)
        self.assertEqual(
            list(Cotizacion.objects.filter(etapa=self.ganado).order_by("orden").values_list("id", flat=True)),
            [b.id, a.id],
        )

    def test_operaciones_de_adjuntos(self):
        cotizacion = crear_cotizacion(cliente=self.cliente, vendedor=None)
        aplicar_operacion(cotizacion, "addFactura", {"item": {"numero": "A-0001", "monto": 5000}})
        factura = cotizacion.facturas[0]
        self.assertTrue(factura["uid"])

        aplicar_operacion(cotizacion, "appendArchivos", {"archivos": [{"nombre": "plano.pdf"}, "https://x/y.jpg"]})
        self.assertEqual(len(cotizacion.archivos), 2)
        self.assertEqual(cotizacion.archivos[1]["url"], "https://x/y.jpg")

        aplicar_operacion(cotizacion, "removeFactura", {"uid": factura["uid"]})
        cotizacion.refresh_from_db()
        self.assertEqual(cotizacion.facturas, [])

        with self.assertRaises(PipelineError):
            aplicar_operacion(cotizacion, "removeFactura", {"uid": "no-existe"})
        with self.assertRaises(PipelineError):
            aplicar_operacion(cotizacion, "borrarTodo", {})

    def test_set_codigo_unico(self):
        a = crear_cotizacion(cliente=self.cliente, vendedor=None)
        b = crear_cotizacion(cliente=self.cliente, vendedor=None)

        aplicar_operacion(a, "setCodigo", {"codigo": " cot-100 "})
        self.assertEqual(Cotizacion.objects.get(pk=a.pk).codigo, "COT-100")
        with self.assertRaisesMessage(PipelineError, "ya está en uso"):
            aplicar_operacion(b, "setCodigo", {"codigo": "COT-100"})

    def test_parse_monto(self):
        self.assertEqual(parse_monto("1.250,50"), Decimal("1250.50"))
        self.assertEqual(parse_monto("$ 1250.5"), Decimal("1250.5"))
        self.assertEqual(parse_monto("1250,5"), Decimal("1250.5"))
        self.assertEqual(parse_monto(300), Decimal("300"))
        self.assertIsNone(parse_monto("sin precio"))
        self.assertIsNone(parse_monto(True))

    def test_precio_desde_formulario_ignora_claves_internas(self):
        datos = {PRECIO_NUEVO_KEY: 10, "Observaciones": "x", "Precio negociado": "900"}
        self.assertEqual(precio_desde_formulario(datos), Decimal("900"))
        self.assertIsNone(precio_desde_formulario({}))


class ImportacionTests(TestCase):
    def test_fila_a_cliente_normaliza_campos(self):
        data = fila_a_cliente(
            {"Nombre": "  Juan   Pérez ", "Teléfono": 1155550000.0, "Email": "JUAN@EXAMPLE.COM", "Prioridad": "alta", "Etapa": "negociacion"}
        )
        self.assertEqual(data["nombre_completo"], "Juan Pérez")
        self.assertEqual(data["telefono"], "1155550000")
        self.assertEqual(data["email"], "juan@example.com")
        self.assertEqual(data["prioridad"], "Alta")
        self.assertEqual(data["etapa"], Cliente.ETAPA_NEGOCIACION)

    def test_fila_sin_telefono_se_omite(self):
        self.assertIsNone(fila_a_cliente({"nombre": "Sin teléfono"}))

    def test_importar_clientes_cuenta_insertados_y_omitidos(self):
        vendedor = get_user_model().objects.create_user(username="v@example.com", password="test12345")
        result = importar_clientes(
            [{"nombre": "Ana", "telefono": "111"}, {"nombre": "Sin datos"}, "basura", {"cliente": "Beto", "celular": "222"}],
            vendedor=vendedor,
        )

        self.assertEqual(result, {"insertados": 2, "omitidos": 2})
        self.assertEqual(Cliente.objects.filter(vendedor_asignado=vendedor).count(), 2)
        self.assertEqual(Cliente.objects.get(nombre_completo="Ana").etapa, Cliente.ETAPA_NUEVO)

    def test_leer_csv_con_bom_y_acentos(self):
        contenido = "\ufeffNombre,Teléfono,Empresa\nCarla Ruiz,11-4444-5555,Obra Norte\n".encode("utf-8")
        rows = leer_archivo("clientes.csv", contenido)
        self.assertEqual(rows, [{"nombre": "Carla Ruiz", "telefono": "11-4444-5555", "empresa": "Obra Norte"}])

    def test_leer_xlsx(self):
        wb = Workbook()
        ws = wb.active
        ws.append(["Nombre Completo", "Celular", "Origen Contacto"])
        ws.append(["Diego Sosa", 1166667777, "Facebook"])
        buffer = BytesIO()
        wb.save(buffer)

        rows = leer_archivo("clientes.xlsx", buffer.getvalue())
        data = fila_a_cliente(rows[0])
        self.assertEqual(data["nombre_completo"], "Diego Sosa")
        self.assertEqual(data["telefono"], "1166667777")
        self.assertEqual(data["origen_contacto"], "Facebook")

    def test_xlsx_danado(self):
        with self.assertRaisesMessage(ImportacionError, "XLSX"):
            leer_archivo("clientes.xlsx", b"not a zip file")

    def test_csv_que_no_es_utf8(self):
        with self.assertRaisesMessage(ImportacionError, "UTF-8"):
            leer_archivo("clientes.csv", "Nombre\nPeña\n".encode("latin-1"))

    def test_formato_no_soportado(self):
        with self.assertRaises(ImportacionError):
            leer_archivo("clientes.pdf", b"%PDF")


class CommandTests(TestCase):
    def test_bootstrap_pipeline_es_idempotente(self):
        call_command("bootstrap_pipeline", stdout=StringIO())
        call_command("bootstrap_pipeline", stdout=StringIO())

        self.assertEqual(EtapaCotizacion.objects.count(), 5)
        perdido = FormularioEtapa.objects.get(etapa__nombre="Perdido")
        self.assertEqual(perdido.campos[0]["titulo"], "Motivo")

    def test_importar_clientes_command(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "clientes.csv"
            path.write_text("nombre,telefono\nEva Luna,123\n,456\n", encoding="utf-8")
            out = StringIO()
            call_command("importar_clientes", str(path), stdout=out)

        self.assertIn("1 insertados, 1 omitidos", out.getvalue())
        self.assertTrue(Cliente.objects.filter(nombre_completo="Eva Luna").exists())
        self.assertTrue(AuditLog.objects.filter(action="IMPORT", object_id="clientes.csv").exists())

    def test_importar_clientes_vendedor_inexistente(self):
        with tempfile.NamedTemporaryFile(suffix=".csv") as tmp:
            with self.assertRaises(CommandError):
                call_command("importar_clientes", tmp.name, "--vendedor", "nadie@example.com")

    def test_historial_guarda_nombre_de_etapa(self):
        etapa = EtapaCotizacion.objects.create(nombre="Medición")
        cliente = Cliente.objects.create(nombre_completo="X", telefono="1")
        cotizacion = Cotizacion.objects.create(cliente=cliente, etapa=etapa)
        historial = HistorialEtapa.objects.create(cotizacion=cotizacion, etapa=etapa)
        self.assertEqual(historial.etapa_nombre, "Medición")
