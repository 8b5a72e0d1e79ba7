from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.access import ROLE_ADMIN, ROLE_DEPOSITO, ROLE_GERENTE, ROLE_TECNICO, ROLE_VENDEDOR, set_user_role
from core.models import AuditLog, ConfigOpcion, Prioridad, RoleAccess, Sucursal, UserProfile
from crm.models import Proveedor


def crear_usuario(email, role=None, **extra):
    user = get_user_model().objects.create_user(username=email, email=email, password="test12345", **extra)
    if role:
        set_user_role(user, role)
    return user


class AuthEndpointsTests(APITestCase):
    def test_endpoint_requires_authentication(self):
        resp = self.client.get(reverse("api_auth_session"))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(resp.data["success"])
        self.assertTrue(resp.data["error"])

    def test_check_first_admin_and_first_registration(self):
        resp = self.client.get(reverse("api_check_first_admin"))
        self.assertTrue(resp.data["data"]["is_first_admin"])

        resp = self.client.post(
            reverse("api_register"),
            {"name": "Dueña", "email": "Duena@Example.com", "password": "secreto1", "rol": ROLE_ADMIN},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.assertEqual(resp.data["data"]["email"], "duena@example.com")
        self.assertEqual(resp.data["data"]["rol"], ROLE_ADMIN)

        resp = self.client.get(reverse("api_check_first_admin"))
        self.assertFalse(resp.data["data"]["is_first_admin"])

    def test_registration_closed_once_an_admin_exists(self):
        crear_usuario("admin@example.com", ROLE_ADMIN)
        resp = self.client.post(
            reverse("api_register"),
            {"name": "Intruso", "email": "intruso@example.com", "password": "secreto1"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(get_user_model().objects.filter(email="intruso@example.com").exists())

    def test_register_validates_payload(self):
        crear_usuario("tomado@example.com")
        resp = self.client.post(
            reverse("api_register"),
            {"name": "X", "email": "TOMADO@example.com", "password": "123"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("email", resp.data["details"])
        self.assertIn("password", resp.data["details"])

    def test_login_session_and_logout(self):
        crear_usuario("vendedora@example.com", ROLE_VENDEDOR, first_name="Vera")

        resp = self.client.post(
            reverse("api_auth_login"), {"email": "vendedora@example.com", "password": "mala"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(resp.data["error"], "Email o contraseña incorrectos.")

        resp = self.client.post(
            reverse("api_auth_login"), {"email": "Vendedora@example.com ", "password": "test12345"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["user"]["name"], "Vera")
        self.assertIn("pipeline", resp.data["data"]["sections"])
        self.assertTrue(AuditLog.objects.filter(action="LOGIN").exists())

        resp = self.client.get(reverse("api_auth_session"))
        self.assertEqual(resp.data["data"]["user"]["email"], "vendedora@example.com")

        self.client.post(reverse("api_auth_logout"))
        self.assertEqual(self.client.get(reverse("api_auth_session")).status_code, status.HTTP_401_UNAUTHORIZED)


class UsuariosEndpointsTests(APITestCase):
    def setUp(self):
        self.admin = crear_usuario("admin@example.com", ROLE_ADMIN, first_name="Admin")
        self.sucursal = Sucursal.objects.create(nombre="Centro", direccion="Av. Siempreviva 742")
        self.client.force_authenticate(self.admin)

    def test_create_user_with_profile_blocks(self):
        resp = self.client.post(
            reverse("api_users_create"),
            {
                "name": "Tomás",
                "email": "tomas@example.com",
                "password": "secreto1",
                "rol": ROLE_TECNICO,
                "sucursal_id": self.sucursal.id,
                "personal_data": {"dni": "30111222", "apodo": " "},
            },
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        data = resp.data["data"]
        self.assertEqual(data["rol"], ROLE_TECNICO)
        self.assertEqual(data["sucursal_nombre"], "Centro")
        self.assertEqual(data["personal_data"], {"dni": "30111222", "apodo": None})

    def test_create_user_with_unknown_sucursal(self):
        resp = self.client.post(
            reverse("api_users_create"),
            {"name": "X", "email": "x@example.com", "password": "secreto1", "sucursal_id": 9999},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertFalse(get_user_model().objects.filter(email="x@example.com").exists())

    def test_list_filters_by_role(self):
        crear_usuario("dep@example.com", ROLE_DEPOSITO)
        resp = self.client.get(reverse("api_users"), {"rol": ROLE_DEPOSITO})
        self.assertEqual([u["email"] for u in resp.data["data"]], ["dep@example.com"])

    def test_update_and_delete_user(self):
        user = crear_usuario("tec@example.com", ROLE_TECNICO)
        resp = self.client.put(
            reverse("api_user_detail", args=[user.id]),
            {"rol": ROLE_DEPOSITO, "activo": False, "sucursal_id": self.sucursal.id},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["rol"], ROLE_DEPOSITO)
        self.assertFalse(resp.data["data"]["activo"])
        self.assertEqual(resp.data["data"]["sucursal_id"], self.sucursal.id)

        resp = self.client.delete(reverse("api_user_detail", args=[self.admin.id]))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        resp = self.client.delete(reverse("api_user_detail", args=[user.id]))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)

    def test_non_manager_cannot_manage_users(self):
        vendedor = crear_usuario("v@example.com", ROLE_VENDEDOR)
        self.client.force_authenticate(vendedor)

        resp = self.client.get(reverse("api_user_detail", args=[self.admin.id]))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        resp = self.client.get(reverse("api_user_detail", args=[vendedor.id]))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        resp = self.client.post(
            reverse("api_users_create"),
            {"name": "X", "email": "x@example.com", "password": "secreto1"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_profile_update_cannot_change_role(self):
        vendedor = crear_usuario("v@example.com", ROLE_VENDEDOR)
        self.client.force_authenticate(vendedor)
        resp = self.client.put(
            reverse("api_users_me"),
            {"name": "Nuevo Nombre", "rol": ROLE_ADMIN, "contact_data": {"telefono": "111"}},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["data"]["name"], "Nuevo Nombre")
        self.assertEqual(resp.data["data"]["rol"], ROLE_VENDEDOR)
        self.assertEqual(resp.data["data"]["contact_data"], {"telefono": "111"})

    def test_avatar_upload(self):
        resp = self.client.post(
            reverse("api_users_me_avatar"),
            {"file": SimpleUploadedFile("a.png", b"\x89PNG fake", content_type="image/png")},
            format="multipart",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertTrue(resp.data["data"]["image"].startswith("data:image/png;base64,"))
        self.assertTrue(UserProfile.objects.get(user=self.admin).image)

        resp = self.client.post(
            reverse("api_users_me_avatar"),
            {"file": SimpleUploadedFile("a.txt", b"hola", content_type="text/plain")},
            format="multipart",
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)


class ConfiguracionEndpointsTests(APITestCase):
    def setUp(self):
        self.admin = crear_usuario("admin@example.com", ROLE_ADMIN)
        self.client.force_authenticate(self.admin)

    def test_role_access_override(self):
        resp = self.client.put(
            reverse("api_role_access"),
            {"role": ROLE_TECNICO, "sections": ["proyectos", "perfil"], "proyecto_stages": ["medicion"]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(RoleAccess.objects.get(role=ROLE_TECNICO).proyecto_stages, ["medicion"])

        resp = self.client.get(reverse("api_role_access"))
        tecnico = next(row for row in resp.data["data"] if row["role"] == ROLE_TECNICO)
        self.assertTrue(tecnico["personalizado"])
        self.assertEqual(tecnico["sections"], ["proyectos", "perfil"])

        resp = self.client.put(
            reverse("api_role_access"), {"role": ROLE_TECNICO, "sections": ["inexistente"]}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_role_access_is_admin_only(self):
        self.client.force_authenticate(crear_usuario("g@example.com", ROLE_GERENTE))
        resp = self.client.put(
            reverse("api_role_access"), {"role": ROLE_TECNICO, "sections": ["perfil"]}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_sucursales_crud_and_protected_delete(self):
        resp = self.client.post(reverse("api_sucursales"), {"nombre": "Norte", "direccion": " "}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.post(
            reverse("api_sucursales"), {"nombre": "Norte", "direccion": "Ruta 8 km 50"}, format="json"
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        sucursal_id = resp.data["data"]["id"]

        resp = self.client.get(reverse("api_sucursales"), {"q": "ruta 8"})
        self.assertEqual(len(resp.data["data"]), 1)

        resp = self.client.patch(reverse("api_sucursal_detail", args=[sucursal_id]), {"cbu": "0000003100"}, format="json")
        self.assertEqual(resp.data["data"]["cbu"], "0000003100")

        Proveedor.objects.create(razon_social="Vidrios SA", cuit="30-1-9", sucursal_id=sucursal_id)
        resp = self.client.delete(reverse("api_sucursal_detail", args=[sucursal_id]))
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

    def test_prioridades_are_deduplicated(self):
        resp = self.client.post(reverse("api_prioridades"), {"nombre": "urgente"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        resp = self.client.post(reverse("api_prioridades"), {"nombre": "URGENTE"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(Prioridad.objects.count(), 1)

        resp = self.client.post(reverse("api_prioridades"), {"nombre": "alta"}, format="json")
        self.assertEqual(resp.data["data"]["nombre"], "Alta")

    def test_prioridad_insert_race_is_a_validation_error(self):
        Prioridad.objects.create(nombre="Alta")
        with patch("api.core_views.PrioridadesView._existente", return_value=None):
            resp = self.client.post(reverse("api_prioridades"), {"nombre": "alta"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(resp.data["error"], "La prioridad Alta ya existe.")
        self.assertEqual(Prioridad.objects.count(), 1)

    def test_configuracion_options(self):
        url = reverse("api_configuracion", args=["tipo_abertura"])
        resp = self.client.post(url, {"valor": "  Puerta   balcón "}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        resp = self.client.post(url, {"valor": "Puerta balcón"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        resp = self.client.get(url)
        self.assertEqual([o["valor"] for o in resp.data["data"]], ["Puerta balcón"])
        self.assertEqual(ConfigOpcion.objects.filter(tipo="tipo_abertura").count(), 1)
