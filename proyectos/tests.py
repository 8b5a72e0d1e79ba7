from django.test import TestCase

from crm.models import Cliente
from proyectos.models import Proyecto
from proyectos.workflow import (
    ETAPA_COMPLETADA,
    WorkflowError,
    actualizar_etapas,
    cambiar_estado,
    completar_etapa,
    resolver_etapa,
    siguiente_estado,
)


class ProyectoWorkflowTests(TestCase):
    def setUp(self):
        self.cliente = Cliente.objects.create(nombre_completo="Marta Díaz", telefono="1144443333")
        self.proyecto = Proyecto.objects.create(cliente=self.cliente)

    def test_numero_orden_correlativo(self):
        otro = Proyecto.objects.create(cliente=self.cliente)
        self.assertEqual(self.proyecto.numero_orden, "OT-00001")
        self.assertEqual(otro.numero_orden, "OT-00002")
        self.assertEqual(self.proyecto.estado_actual, Proyecto.ESTADO_VISITA_TECNICA)

    def test_flujo_completo_hasta_entrega(self):
        pasos = [
            ("visita_tecnica", {"observaciones": "Acceso por escalera"}, Proyecto.ESTADO_MEDICION),
            ("medicion", {"estado": "Completado", "enviar_a_verificacion": "Sí"}, Proyecto.ESTADO_VERIFICACION),
            ("verificacion", {"aprobado_para_produccion": "Sí"}, Proyecto.ESTADO_TALLER),
            (
                "taller",
                {"estado_interno": "Completo", "destino_final": "Depósito", "pedido_listo_para_entrega": "Sí"},
                Proyecto.ESTADO_DEPOSITO,
            ),
            ("deposito", {"estado_interno": "Listo para entrega"}, Proyecto.ESTADO_LOGISTICA),
            ("logistica", {"estado_entrega": "Entregado"}, Proyecto.ESTADO_COMPLETADO),
        ]
        proyecto = self.proyecto
        for etapa, datos, esperado in pasos:
            proyecto = completar_etapa(proyecto, etapa, datos)
            self.assertEqual(proyecto.estado_actual, esperado, etapa)
            self.assertEqual(getattr(proyecto, etapa)["estado"], ETAPA_COMPLETADA)
            self.assertIn("fecha_completado", getattr(proyecto, etapa))

        proyecto.refresh_from_db()
        self.assertEqual(proyecto.visita_tecnica["observaciones"], "Acceso por escalera")

    def test_condicion_no_cumplida_no_avanza(self):
        self.proyecto.estado_actual = Proyecto.ESTADO_MEDICION
        self.proyecto.save()

        proyecto = completar_etapa(self.proyecto, "medicion", {"estado": "Parcial", "enviar_a_verificacion": "No"})
        self.assertEqual(proyecto.estado_actual, Proyecto.ESTADO_MEDICION)

    def test_destino_final_define_estado_tras_taller(self):
        datos = {"pedido_listo_para_entrega": True}
        self.assertEqual(
            siguiente_estado("taller", {**datos, "destino_final": "Instalación en obra"}), Proyecto.ESTADO_INSTALACION
        )
        self.assertEqual(
            siguiente_estado("taller", {**datos, "destino_final": "Retiro por cliente"}), Proyecto.ESTADO_RETIRO_CLIENTE
        )
        self.assertIsNone(siguiente_estado("taller", datos))

    def test_forzar_estado(self):
        proyecto = completar_etapa(self.proyecto, "visita_tecnica", {}, forzar_estado=Proyecto.ESTADO_PAUSADO)
        self.assertEqual(proyecto.estado_actual, Proyecto.ESTADO_PAUSADO)
        with self.assertRaises(WorkflowError):
            completar_etapa(self.proyecto, "visita_tecnica", {}, forzar_estado="Volando")

    def test_valores_invalidos(self):
        with self.assertRaisesMessage(WorkflowError, "Valor inválido"):
            completar_etapa(self.proyecto, "logistica", {"estado_entrega": "Perdido en el camino"})
        with self.assertRaisesMessage(WorkflowError, "Etapa desconocida"):
            resolver_etapa("pintura")

    def test_nombres_de_etapa_y_campos_en_snake_case(self):
        self.assertEqual(resolver_etapa("visita_tecnica"), "visita_tecnica")
        with self.assertRaisesMessage(WorkflowError, "Etapa desconocida"):
            resolver_etapa("visitaTecnica")
        with self.assertRaisesMessage(WorkflowError, "usa enviar_a_verificacion"):
            completar_etapa(self.proyecto, "medicion", {"enviarAVerificacion": "Sí"})
        with self.assertRaisesMessage(WorkflowError, "usa pedido_listo_para_entrega"):
            actualizar_etapas(self.proyecto, {"taller": {"pedidoListoParaEntrega": "Sí"}})

        self.proyecto.refresh_from_db()
        self.assertEqual(self.proyecto.medicion, {})
        self.assertEqual(self.proyecto.taller, {})

    def test_actualizar_etapas_fusiona_y_vacia(self):
        proyecto = actualizar_etapas(self.proyecto, {"medicion": {"ancho": 120}, "taller": {"estado_interno": "En proceso"}})
        proyecto = actualizar_etapas(proyecto, {"medicion": {"alto": 90}, "taller": {}})
        proyecto.refresh_from_db()

        self.assertEqual(proyecto.medicion, {"ancho": 120, "alto": 90})
        self.assertEqual(proyecto.taller, {})
        self.assertEqual(proyecto.estado_actual, Proyecto.ESTADO_VISITA_TECNICA)
        with self.assertRaises(WorkflowError):
            actualizar_etapas(proyecto, {})

    def test_cambiar_estado_permite_limpiarlo(self):
        cambiar_estado(self.proyecto, Proyecto.ESTADO_RECHAZADO)
        self.assertEqual(Proyecto.objects.get(pk=self.proyecto.pk).estado_actual, Proyecto.ESTADO_RECHAZADO)
        cambiar_estado(self.proyecto, None)
        self.assertIsNone(Proyecto.objects.get(pk=self.proyecto.pk).estado_actual)
