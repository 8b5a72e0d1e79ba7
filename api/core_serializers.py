from django.contrib.auth import get_user_model
from django.db.models import Q
from rest_framework import serializers

from core.access import (
    ALL_PROYECTO_STAGES,
    ALL_SECTIONS,
    DEFAULT_ROLE,
    ROLE_ORDER,
    allowed_proyecto_stages,
    allowed_sections,
    primary_role,
)
from core.models import ConfigOpcion, Prioridad, RoleAccess, Sucursal, UserProfile
from core.normalizacion import normalizar_prioridad

User = get_user_model()

DATA_BLOCKS = ["personal_data", "contact_data", "laboral_data", "financiera_legal_data"]


def email_en_uso(email: str, exclude_pk=None) -> bool:
    qs = User.objects.filter(Q(username__iexact=email) | Q(email__iexact=email))
    if exclude_pk is not None:
        qs = qs.exclude(pk=exclude_pk)
    return qs.exists()


class SucursalSerializer(serializers.ModelSerializer):
    class Meta:
        model = Sucursal
        fields = [
            "id",
            "nombre",
            "direccion",
            "link_pago_abierto",
            "cbu",
            "email",
            "qr_pago_abierto_img",
            "alias_img",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_direccion(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("La dirección es obligatoria.")
        return value


class UsuarioSerializer(serializers.ModelSerializer):
    name = serializers.CharField(source="first_name")
    activo = serializers.BooleanField(source="is_active")
    rol = serializers.SerializerMethodField()
    sucursal_id = serializers.SerializerMethodField()
    sucursal_nombre = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "name", "email", "rol", "activo", "sucursal_id", "sucursal_nombre"]

    @staticmethod
    def _profile(obj):
        return getattr(obj, "userprofile", None)

    def get_rol(self, obj):
        return primary_role(obj)

    def get_sucursal_id(self, obj):
        profile = self._profile(obj)
        return profile.sucursal_id if profile else None

    def get_sucursal_nombre(self, obj):
        profile = self._profile(obj)
        return profile.sucursal.nombre if profile and profile.sucursal_id else ""


class UsuarioDetalleSerializer(UsuarioSerializer):
    image = serializers.SerializerMethodField()
    personal_data = serializers.SerializerMethodField()
    contact_data = serializers.SerializerMethodField()
    laboral_data = serializers.SerializerMethodField()
    financiera_legal_data = serializers.SerializerMethodField()

    class Meta(UsuarioSerializer.Meta):
        fields = UsuarioSerializer.Meta.fields + ["image", *DATA_BLOCKS, "date_joined", "last_login"]

    def _block(self, obj, name):
        profile = self._profile(obj)
        return getattr(profile, name) if profile else {}

    def get_image(self, obj):
        profile = self._profile(obj)
        return profile.image if profile else ""

    def get_personal_data(self, obj):
        return self._block(obj, "personal_data")

    def get_contact_data(self, obj):
        return self._block(obj, "contact_data")

    def get_laboral_data(self, obj):
        return self._block(obj, "laboral_data")

    def get_financiera_legal_data(self, obj):
        return self._block(obj, "financiera_legal_data")


class SesionSerializer(serializers.Serializer):
    user = UsuarioDetalleSerializer(source="*")
    sections = serializers.SerializerMethodField()
    proyecto_stages = serializers.SerializerMethodField()

    def get_sections(self, obj):
        return allowed_sections(obj)

    def get_proyecto_stages(self, obj):
        return allowed_proyecto_stages(obj)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)

    def validate_email(self, value):
        return value.strip().lower()


class RegistroSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True, trim_whitespace=False)
    rol = serializers.ChoiceField(choices=ROLE_ORDER, default=DEFAULT_ROLE)

    def validate_email(self, value):
        value = value.strip().lower()
        if email_en_uso(value):
            raise serializers.ValidationError("El email ya está registrado.")
        return value


class UsuarioCreateSerializer(RegistroSerializer):
    sucursal_id = serializers.IntegerField(required=False, allow_null=True)
    personal_data = serializers.DictField(required=False)
    contact_data = serializers.DictField(required=False)
    laboral_data = serializers.DictField(required=False)
    financiera_legal_data = serializers.DictField(required=False)


class UsuarioUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150, required=False)
    email = serializers.EmailField(required=False)
    rol = serializers.ChoiceField(choices=ROLE_ORDER, required=False)
    activo = serializers.BooleanField(required=False)
    password = serializers.CharField(min_length=6, required=False, write_only=True, trim_whitespace=False)
    personal_data = serializers.DictField(required=False)
    contact_data = serializers.DictField(required=False)
    laboral_data = serializers.DictField(required=False)
    financiera_legal_data = serializers.DictField(required=False)

    def validate_email(self, value):
        value = value.strip().lower()
        user = self.context.get("user")
        if email_en_uso(value, exclude_pk=getattr(user, "pk", None)):
            raise serializers.ValidationError("El email ya está registrado.")
        return value


class PerfilUpdateSerializer(UsuarioUpdateSerializer):
    """Lo que cada usuario puede editar de sí mismo: sin rol ni estado."""

    rol = None
    activo = None


class RoleAccessSerializer(serializers.ModelSerializer):
    role = serializers.ChoiceField(choices=ROLE_ORDER)
    sections = serializers.ListField(child=serializers.ChoiceField(choices=ALL_SECTIONS))
    proyecto_stages = serializers.ListField(
        child=serializers.ChoiceField(choices=ALL_PROYECTO_STAGES), required=False, default=list
    )

    class Meta:
        model = RoleAccess
        fields = ["role", "sections", "proyecto_stages", "updated_at"]
        read_only_fields = ["updated_at"]
        # El upsert por rol lo resuelve la vista.
        validators = []


class PrioridadSerializer(serializers.ModelSerializer):
    class Meta:
        model = Prioridad
        fields = ["id", "nombre", "activa"]
        extra_kwargs = {"nombre": {"validators": []}}

    def validate_nombre(self, value):
        value = normalizar_prioridad(value)
        if not value:
            raise serializers.ValidationError("El nombre es obligatorio.")
        return value


class ConfigOpcionSerializer(serializers.ModelSerializer):
    class Meta:
        model = ConfigOpcion
        fields = ["id", "tipo", "valor", "created_at"]
        read_only_fields = ["id", "tipo", "created_at"]
        validators = []

    def validate_valor(self, value):
        value = " ".join(value.split())
        if not value:
            raise serializers.ValidationError("El valor es obligatorio.")
        return value


def aplicar_datos_perfil(profile: UserProfile, data: dict) -> list[str]:
    fields = []
    for block in DATA_BLOCKS:
        if block in data:
            setattr(profile, block, data[block] or {})
            fields.append(block)
    return fields
