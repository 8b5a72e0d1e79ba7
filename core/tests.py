from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management import call_command
from django.db import IntegrityError
from django.test import TestCase
from django.urls import reverse
from rest_framework.authtoken.models import Token

from core.access import (
    ROLE_ADMIN,
    ROLE_DEPOSITO,
    ROLE_TECNICO,
    ROLE_VENDEDOR,
    SECTION_CLIENTES,
    SECTION_PIPELINE,
    SECTION_STOCK,
    STAGE_MEDICION,
    STAGE_TALLER,
    allowed_proyecto_stages,
    allowed_sections,
    can_manage_stock,
    can_view_pipeline,
    primary_role,
    set_user_role,
)
from core.audit import log_event
from core.models import AuditLog, RoleAccess, UserProfile
from core.normalizacion import normalizar_nombre, normalizar_prioridad, vacios_a_none
from core.secuencias import guardar_con_codigo, siguiente_codigo
from crm.models import Cliente, Cotizacion, EtapaCotizacion


def _user(username, role=None, **extra):
    user = get_user_model().objects.create_user(username=username, email=username, password="test12345", **extra)
    if role:
        set_user_role(user, role)
    return user


class RoleAccessTests(TestCase):
    def test_static_sections_by_role(self):
        vendedor = _user("vendedor@example.com", ROLE_VENDEDOR)
        deposito = _user("deposito@example.com", ROLE_DEPOSITO)

        self.assertIn(SECTION_PIPELINE, allowed_sections(vendedor))
        self.assertNotIn(SECTION_STOCK, allowed_sections(vendedor))
        self.assertTrue(can_manage_stock(deposito))
        self.assertFalse(can_view_pipeline(deposito))

    def test_user_without_role_has_no_sections(self):
        user = _user("sinrol@example.com")
        self.assertEqual(primary_role(user), "")
        self.assertEqual(allowed_sections(user), [])

    def test_superuser_defaults_to_admin(self):
        root = get_user_model().objects.create_superuser(username="root", email="root@example.com", password="x123456")
        self.assertEqual(primary_role(root), ROLE_ADMIN)
        self.assertIn(SECTION_STOCK, allowed_sections(root))

    def test_role_override_replaces_static_map(self):
        tecnico = _user("tecnico@example.com", ROLE_TECNICO)
        self.assertIn(STAGE_MEDICION, allowed_proyecto_stages(tecnico))

        RoleAccess.objects.create(
            role=ROLE_TECNICO,
            sections=[SECTION_CLIENTES, "inexistente"],
            proyecto_stages=[STAGE_TALLER],
        )
        self.assertEqual(allowed_sections(tecnico), [SECTION_CLIENTES])
        self.assertEqual(allowed_proyecto_stages(tecnico), [STAGE_TALLER])

    def test_set_user_role_keeps_a_single_role_group(self):
        user = _user("cambio@example.com", ROLE_VENDEDOR)
        set_user_role(user, ROLE_DEPOSITO)

        self.assertEqual(list(user.groups.values_list("name", flat=True)), [ROLE_DEPOSITO])
        with self.assertRaises(ValueError):
            set_user_role(user, "superheroe")


class NormalizacionTests(TestCase):
    def test_normalizar_nombre(self):
        self.assertEqual(normalizar_nombre("  José   PÉREZ "), "jose perez")
        self.assertEqual(normalizar_nombre(None), "")

    def test_normalizar_prioridad(self):
        self.assertEqual(normalizar_prioridad("ALTA"), "Alta")
        self.assertEqual(normalizar_prioridad(" baja "), "Baja")
        self.assertEqual(normalizar_prioridad("Urgente  VIP"), "Urgente VIP")
        self.assertEqual(normalizar_prioridad(None), "")

    def test_vacios_a_none(self):
        data = {"dni": " ", "hijos": [{"nombre": ""}], "edad": 0}
        self.assertEqual(vacios_a_none(data), {"dni": None, "hijos": [{"nombre": None}], "edad": 0})


class SecuenciasTests(TestCase):
    def setUp(self):
        self.etapa = EtapaCotizacion.objects.create(nombre="Contacto inicial")
        self.cliente = Cliente.objects.create(nombre_completo="Ana Gómez", telefono="1155550000")

    def test_codigos_correlativos(self):
        primera = Cotizacion.objects.create(cliente=self.cliente, etapa=self.etapa)
        segunda = Cotizacion.objects.create(cliente=self.cliente, etapa=self.etapa)

        self.assertEqual(primera.codigo, "COT-001")
        self.assertEqual(segunda.codigo, "COT-002")

    def test_siguiente_codigo_ignora_codigos_manuales(self):
        Cotizacion.objects.create(cliente=self.cliente, etapa=self.etapa, codigo="COT-041")
        Cotizacion.objects.create(cliente=self.cliente, etapa=self.etapa, codigo="COT-ESPECIAL")

        self.assertEqual(siguiente_codigo(Cotizacion, "codigo", "COT", 3), "COT-042")

    def test_colision_de_codigo_reintenta_con_el_siguiente(self):
        Cotizacion.objects.create(cliente=self.cliente, etapa=self.etapa, codigo="COT-001")
        cotizacion = Cotizacion(cliente=self.cliente, etapa=self.etapa)
        with patch("core.secuencias.siguiente_codigo", side_effect=["COT-001", "COT-002"]):
            with self.assertLogs("core.secuencias", level="WARNING"):
                cotizacion.save()

        self.assertEqual(cotizacion.codigo, "COT-002")
        self.assertEqual(Cotizacion.objects.count(), 2)

    def test_otra_violacion_de_integridad_no_se_reintenta(self):
        cotizacion = Cotizacion(cliente=self.cliente, etapa=self.etapa)
        llamadas = []

        def save():
            llamadas.append(cotizacion.codigo)
            raise IntegrityError("NOT NULL constraint failed: crm_cotizacion.cliente_id")

        with self.assertRaises(IntegrityError):
            guardar_con_codigo(cotizacion, "codigo", "COT", 3, save)
        self.assertEqual(llamadas, ["COT-001"])

    def test_codigo_duplicado_manual_falla(self):
        Cotizacion.objects.create(cliente=self.cliente, etapa=self.etapa, codigo="COT-010")
        with self.assertRaises(IntegrityError):
            Cotizacion.objects.create(cliente=self.cliente, etapa=self.etapa, codigo="COT-010")


class AuditTests(TestCase):
    def test_log_event_ignores_anonymous_actor(self):
        user = _user("auditor@example.com", ROLE_ADMIN)
        with self.assertLogs("core.audit", level="INFO"):
            entry = log_event(user, "MOVE", "Cotizacion", 7, {"etapa": "Ganado"})
        anon = log_event(None, "IMPORT", "Cliente", "")

        self.assertEqual(entry.user, user)
        self.assertEqual(entry.object_id, "7")
        self.assertIsNone(anon.user)
        self.assertEqual(AuditLog.objects.count(), 2)


class ProfileTests(TestCase):
    def test_de_usuario_creates_profile_once(self):
        user = _user("perfil@example.com")
        profile = UserProfile.de_usuario(user)
        self.assertEqual(UserProfile.de_usuario(user).pk, profile.pk)


class HealthCheckTests(TestCase):
    def test_health_endpoint(self):
        response = self.client.get(reverse("health"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})


class ManagementCommandTests(TestCase):
    def test_bootstrap_roles_creates_groups(self):
        out = StringIO()
        call_command("bootstrap_roles", stdout=out)

        self.assertTrue(Group.objects.filter(name=ROLE_DEPOSITO).exists())
        self.assertTrue(Group.objects.get(name=ROLE_ADMIN).permissions.filter(codename="view_auditlog").exists())
        self.assertIn("Roles listos", out.getvalue())

    def test_generar_token_api_rotates(self):
        user = _user("api@example.com")
        out = StringIO()
        call_command("generar_token_api", "--email", "API@example.com", stdout=out)
        first = Token.objects.get(user=user).key
        call_command("generar_token_api", "--email", "api@example.com", "--rotate", stdout=out)

        self.assertNotEqual(Token.objects.get(user=user).key, first)
        self.assertIn("action=rotated", out.getvalue())
