import base64

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError, Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response

from core.access import (
    ALL_PROYECTO_STAGES,
    ALL_SECTIONS,
    ROLE_ORDER,
    ROLE_PROYECTO_STAGE_ACCESS,
    ROLE_SECTION_ACCESS,
    can_manage_configuracion,
    can_manage_role_access,
    can_manage_users,
    set_user_role,
)
from core.audit import log_event
from core.models import ConfigOpcion, Prioridad, RoleAccess, Sucursal, UserProfile
from core.normalizacion import normalizar_nombre, vacios_a_none

from .base import EnvelopeAPIView
from .core_serializers import (
    DATA_BLOCKS,
    ConfigOpcionSerializer,
    PerfilUpdateSerializer,
    PrioridadSerializer,
    RoleAccessSerializer,
    SucursalSerializer,
    UsuarioCreateSerializer,
    UsuarioDetalleSerializer,
    UsuarioSerializer,
    UsuarioUpdateSerializer,
    aplicar_datos_perfil,
)

User = get_user_model()

SUCURSAL_SEARCH_FIELDS = ["nombre", "direccion", "link_pago_abierto", "cbu", "email"]


@transaction.atomic
def crear_usuario(data: dict, sucursal: Sucursal | None = None):
    user = User.objects.create_user(
        username=data["email"],
        email=data["email"],
        password=data["password"],
        first_name=data["name"],
    )
    set_user_role(user, data["rol"])
    profile = UserProfile.de_usuario(user)
    profile.sucursal = sucursal
    aplicar_datos_perfil(profile, {k: vacios_a_none(v) for k, v in data.items() if k in DATA_BLOCKS})
    profile.save()
    return user


def _aplicar_cambios_usuario(user, data: dict) -> None:
    fields = []
    if "name" in data:
        user.first_name = data["name"]
        fields.append("first_name")
    if "email" in data:
        user.email = user.username = data["email"]
        fields += ["email", "username"]
    if "activo" in data:
        user.is_active = data["activo"]
        fields.append("is_active")
    if data.get("password"):
        user.set_password(data["password"])
        fields.append("password")
    if fields:
        user.save(update_fields=fields)
    if data.get("rol"):
        set_user_role(user, data["rol"])

    bloques = {k: vacios_a_none(v) for k, v in data.items() if k in DATA_BLOCKS}
    if bloques:
        profile = UserProfile.de_usuario(user)
        profile.save(update_fields=aplicar_datos_perfil(profile, bloques))


class _CoreBaseView(EnvelopeAPIView):
    def _sucursal_desde(self, raw):
        """Devuelve (sucursal, error_response)."""
        try:
            sucursal_id = self._optional_id(raw)
        except (TypeError, ValueError):
            return None, self._fail("sucursal_id inválido.")
        if sucursal_id is None:
            return None, None
        sucursal = Sucursal.objects.filter(pk=sucursal_id).first()
        if sucursal is None:
            return None, self._fail("Sucursal no encontrada.", status.HTTP_404_NOT_FOUND)
        return sucursal, None


class UsuarioCreateView(_CoreBaseView):
    def post(self, request):
        if not can_manage_users(request.user):
            return self._forbidden("crear usuarios")

        serializer = UsuarioCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        sucursal, error = self._sucursal_desde(serializer.validated_data.get("sucursal_id"))
        if error:
            return error
        user = crear_usuario(serializer.validated_data, sucursal=sucursal)
        log_event(
            request.user,
            "CREATE",
            "auth.User",
            str(user.pk),
            {"email": user.email, "rol": serializer.validated_data["rol"]},
        )
        return self._ok(UsuarioDetalleSerializer(user).data, status.HTTP_201_CREATED)


class UsuariosView(_CoreBaseView):
    def get(self, request):
        qs = User.objects.select_related("userprofile__sucursal").prefetch_related("groups").order_by("first_name", "id")
        rol = (request.query_params.get("rol") or "").strip()
        if rol:
            qs = qs.filter(groups__name=rol)
        return self._ok(UsuarioSerializer(qs, many=True).data)


class UsuarioDetailView(_CoreBaseView):
    def get(self, request, user_id: int):
        user = get_object_or_404(User.objects.select_related("userprofile__sucursal"), pk=user_id)
        if user.pk != request.user.pk and not can_manage_users(request.user):
            return self._forbidden("ver este usuario")
        return self._ok(UsuarioDetalleSerializer(user).data)

    def put(self, request, user_id: int):
        if not can_manage_users(request.user):
            return self._forbidden("editar usuarios")
        user = get_object_or_404(User, pk=user_id)

        serializer = UsuarioUpdateSerializer(data=request.data, context={"user": user})
        serializer.is_valid(raise_exception=True)
        if "sucursal_id" in request.data:
            sucursal, error = self._sucursal_desde(request.data.get("sucursal_id"))
            if error:
                return error
        with transaction.atomic():
            _aplicar_cambios_usuario(user, serializer.validated_data)
            if "sucursal_id" in request.data:
                profile = UserProfile.de_usuario(user)
                profile.sucursal = sucursal
                profile.save(update_fields=["sucursal"])

        log_event(request.user, "UPDATE", "auth.User", str(user.pk), {"campos": sorted(request.data.keys())})
        user = User.objects.select_related("userprofile__sucursal").get(pk=user.pk)
        return self._ok(UsuarioDetalleSerializer(user).data)

    def delete(self, request, user_id: int):
        if not can_manage_users(request.user):
            return self._forbidden("eliminar usuarios")
        user = get_object_or_404(User, pk=user_id)
        if user.pk == request.user.pk:
            return self._fail("No puedes eliminar tu propio usuario.")
        email = user.email
        user.delete()
        log_event(request.user, "DELETE", "auth.User", str(user_id), {"email": email})
        return Response(status=status.HTTP_204_NO_CONTENT)


class PerfilView(_CoreBaseView):
    def get(self, request):
        UserProfile.de_usuario(request.user)
        user = User.objects.select_related("userprofile__sucursal").get(pk=request.user.pk)
        return self._ok(UsuarioDetalleSerializer(user).data)

    def put(self, request):
        serializer = PerfilUpdateSerializer(data=request.data, context={"user": request.user})
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            _aplicar_cambios_usuario(request.user, serializer.validated_data)
        user = User.objects.select_related("userprofile__sucursal").get(pk=request.user.pk)
        return self._ok(UsuarioDetalleSerializer(user).data)


class AvatarView(_CoreBaseView):
    def post(self, request):
        upload = request.FILES.get("file")
        if upload is None:
            return self._fail("Adjunta una imagen en el campo 'file'.")
        content_type = upload.content_type or ""
        if not content_type.startswith("image/"):
            return self._fail("El archivo debe ser una imagen.")
        max_bytes = settings.AVATAR_MAX_BYTES
        if upload.size > max_bytes:
            return self._fail(f"La imagen supera el máximo de {max_bytes // (1024 * 1024)} MB.")

        encoded = base64.b64encode(upload.read()).decode("ascii")
        profile = UserProfile.de_usuario(request.user)
        profile.image = f"data:{content_type};base64,{encoded}"
        profile.save(update_fields=["image"])
        return self._ok({"image": profile.image})


class RoleAccessView(_CoreBaseView):
    def get(self, request):
        overrides = {row.role: row for row in RoleAccess.objects.all()}
        data = []
        for role in ROLE_ORDER:
            row = overrides.get(role)
            data.append(
                {
                    "role": role,
                    "sections": row.sections if row else list(ROLE_SECTION_ACCESS.get(role, ALL_SECTIONS)),
                    "proyecto_stages": (
                        row.proyecto_stages if row else list(ROLE_PROYECTO_STAGE_ACCESS.get(role, ALL_PROYECTO_STAGES))
                    ),
                    "personalizado": row is not None,
                }
            )
        return self._ok(data)

    def put(self, request):
        if not can_manage_role_access(request.user):
            return self._forbidden("editar accesos por rol")
        serializer = RoleAccessSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        row, _ = RoleAccess.objects.update_or_create(
            role=data["role"],
            defaults={"sections": data["sections"], "proyecto_stages": data["proyecto_stages"]},
        )
        log_event(request.user, "UPDATE", "core.RoleAccess", row.role, {"sections": row.sections})
        return self._ok(RoleAccessSerializer(row).data)


class SucursalesView(_CoreBaseView):
    def get(self, request):
        qs = Sucursal.objects.all()
        q = (request.query_params.get("q") or "").strip()
        if q:
            filtro = Q()
            for field in SUCURSAL_SEARCH_FIELDS:
                filtro |= Q(**{f"{field}__icontains": q})
            qs = qs.filter(filtro)
        return self._ok(SucursalSerializer(qs, many=True).data)

    def post(self, request):
        if not can_manage_configuracion(request.user):
            return self._forbidden("crear sucursales")
        serializer = SucursalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        sucursal = serializer.save()
        log_event(request.user, "CREATE", "core.Sucursal", str(sucursal.pk), {"nombre": sucursal.nombre})
        return self._ok(SucursalSerializer(sucursal).data, status.HTTP_201_CREATED)


class SucursalDetailView(_CoreBaseView):
    def get(self, request, sucursal_id: int):
        return self._ok(SucursalSerializer(get_object_or_404(Sucursal, pk=sucursal_id)).data)

    def patch(self, request, sucursal_id: int):
        if not can_manage_configuracion(request.user):
            return self._forbidden("editar sucursales")
        sucursal = get_object_or_404(Sucursal, pk=sucursal_id)
        serializer = SucursalSerializer(sucursal, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        sucursal = serializer.save()
        log_event(request.user, "UPDATE", "core.Sucursal", str(sucursal.pk), {"campos": sorted(request.data.keys())})
        return self._ok(SucursalSerializer(sucursal).data)

    def delete(self, request, sucursal_id: int):
        if not can_manage_configuracion(request.user):
            return self._forbidden("eliminar sucursales")
        sucursal = get_object_or_404(Sucursal, pk=sucursal_id)
        try:
            sucursal.delete()
        except ProtectedError:
            return self._fail("La sucursal tiene proveedores asociados.", status.HTTP_409_CONFLICT)
        log_event(request.user, "DELETE", "core.Sucursal", str(sucursal_id))
        return Response(status=status.HTTP_204_NO_CONTENT)


class PrioridadesView(_CoreBaseView):
    @staticmethod
    def _existente(nombre: str) -> Prioridad | None:
        clave = normalizar_nombre(nombre)
        return next((p for p in Prioridad.objects.all() if normalizar_nombre(p.nombre) == clave), None)

    def get(self, request):
        return self._ok(PrioridadSerializer(Prioridad.objects.filter(activa=True), many=True).data)

    def post(self, request):
        serializer = PrioridadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        nombre = serializer.validated_data["nombre"]
        existente = self._existente(nombre)
        if existente is not None:
            return self._ok(PrioridadSerializer(existente).data)
        try:
            with transaction.atomic():
                prioridad = serializer.save()
        except IntegrityError:
            return self._fail(f"La prioridad {nombre} ya existe.")
        return self._ok(PrioridadSerializer(prioridad).data, status.HTTP_201_CREATED)


class ConfiguracionView(_CoreBaseView):
    def get(self, request, tipo: str):
        qs = ConfigOpcion.objects.filter(tipo=tipo).order_by("valor")
        return self._ok(ConfigOpcionSerializer(qs, many=True).data)

    def post(self, request, tipo: str):
        serializer = ConfigOpcionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        opcion, created = ConfigOpcion.objects.get_or_create(tipo=tipo, valor=serializer.validated_data["valor"])
        return self._ok(
            ConfigOpcionSerializer(opcion).data,
            status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )
