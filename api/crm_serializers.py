from decimal import Decimal

from rest_framework import serializers

from core.normalizacion import normalizar_prioridad
from crm.models import (
    Cliente,
    Cotizacion,
    Empresa,
    EtapaCotizacion,
    FormularioEtapa,
    HistorialEtapa,
    Interaccion,
    Nota,
    Proveedor,
    Tarea,
)

EMPRESA_FIELDS = [
    "id",
    "razon_social",
    "nombre_fantasia",
    "domicilio",
    "barrio",
    "localidad",
    "provincia",
    "codigo_postal",
    "pais",
    "telefono",
    "email",
    "cuit",
    "categoria_iva",
    "inscripto_ganancias",
    "notas",
    "created_at",
    "updated_at",
]


def _nombre_usuario(user) -> str:
    if user is None:
        return ""
    return user.first_name or user.username


class EmpresaSerializer(serializers.ModelSerializer):
    creado_por = serializers.SerializerMethodField()

    class Meta:
        model = Empresa
        fields = EMPRESA_FIELDS + ["creado_por"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def get_creado_por(self, obj):
        return _nombre_usuario(obj.creado_por)


class EmpresaSimpleSerializer(serializers.ModelSerializer):
    class Meta:
        model = Empresa
        fields = ["id", "razon_social", "nombre_fantasia", "cuit"]


class ProveedorSerializer(serializers.ModelSerializer):
    sucursal_nombre = serializers.CharField(source="sucursal.nombre", read_only=True)
    creado_por = serializers.SerializerMethodField()

    class Meta:
        model = Proveedor
        fields = EMPRESA_FIELDS + ["proveedor_id", "fecha_vto_cai", "sucursal", "sucursal_nombre", "creado_por"]
        read_only_fields = ["id", "sucursal", "created_at", "updated_at"]
        extra_kwargs = {"cuit": {"required": True, "allow_blank": False}}

    def get_creado_por(self, obj):
        return _nombre_usuario(obj.creado_por)


class ClienteSerializer(serializers.ModelSerializer):
    empresa_asignada_nombre = serializers.CharField(source="empresa_asignada.razon_social", read_only=True, default="")
    creado_por = serializers.SerializerMethodField()
    ultimo_contacto = serializers.DateTimeField(read_only=True, default=None)
    ultima_cotizacion_monto = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True, default=None)

    class Meta:
        model = Cliente
        fields = [
            "id",
            "nombre_completo",
            "email",
            "telefono",
            "empresa",
            "empresa_asignada",
            "empresa_asignada_nombre",
            "direccion_empresa",
            "ciudad_empresa",
            "pais_empresa",
            "razon_social",
            "contacto_empresa",
            "cuil",
            "prioridad",
            "origen_contacto",
            "direccion",
            "pais",
            "dni",
            "ciudad",
            "notas",
            "etapa",
            "motivo_rechazo",
            "detalle_rechazo",
            "vendedor_asignado",
            "creado_por",
            "ultimo_contacto",
            "ultima_cotizacion_monto",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "vendedor_asignado", "created_at", "updated_at"]

    def get_creado_por(self, obj):
        return _nombre_usuario(obj.vendedor_asignado)

    def validate_nombre_completo(self, value):
        value = " ".join(value.split())
        if not value:
            raise serializers.ValidationError("El nombre es obligatorio.")
        return value

    def validate_email(self, value):
        return (value or "").strip().lower()

    def validate_prioridad(self, value):
        return normalizar_prioridad(value) or Cliente.PRIORIDAD_DEFAULT


class NotaSerializer(serializers.ModelSerializer):
    user_nombre = serializers.SerializerMethodField()

    class Meta:
        model = Nota
        fields = ["id", "cliente", "user", "user_nombre", "contenido", "created_at"]
        read_only_fields = ["id", "cliente", "user", "created_at"]

    def get_user_nombre(self, obj):
        return _nombre_usuario(obj.user)

    def validate_contenido(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("La nota no puede estar vacía.")
        return value


class InteraccionSerializer(serializers.ModelSerializer):
    user_nombre = serializers.SerializerMethodField()

    class Meta:
        model = Interaccion
        fields = ["id", "cliente", "user", "user_nombre", "tipo", "nota", "fecha"]
        read_only_fields = ["id", "cliente", "user"]

    def get_user_nombre(self, obj):
        return _nombre_usuario(obj.user)


class TareaSerializer(serializers.ModelSerializer):
    cliente_nombre = serializers.CharField(source="cliente.nombre_completo", read_only=True, default="")

    class Meta:
        model = Tarea
        fields = [
            "id",
            "titulo",
            "descripcion",
            "prioridad",
            "fecha_vencimiento",
            "hora_inicio",
            "hora_fin",
            "completada",
            "cliente",
            "cliente_nombre",
            "vendedor_asignado",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "vendedor_asignado", "created_at", "updated_at"]

    def validate(self, attrs):
        inicio = attrs.get("hora_inicio", getattr(self.instance, "hora_inicio", None))
        fin = attrs.get("hora_fin", getattr(self.instance, "hora_fin", None))
        if inicio and fin and fin < inicio:
            raise serializers.ValidationError("La hora de fin no puede ser anterior a la de inicio.")
        return attrs


class CampoFormularioSerializer(serializers.Serializer):
    titulo = serializers.CharField(max_length=120)
    tipo = serializers.ChoiceField(choices=FormularioEtapa.TIPOS_CAMPO)
    opciones = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    requerido = serializers.BooleanField(required=False, default=False)


class FormularioEtapaSerializer(serializers.ModelSerializer):
    campos = CampoFormularioSerializer(many=True)

    class Meta:
        model = FormularioEtapa
        fields = ["etapa", "campos", "updated_at"]
        read_only_fields = ["etapa", "updated_at"]


class EtapaCotizacionSerializer(serializers.ModelSerializer):
    campos = CampoFormularioSerializer(many=True, required=False, write_only=True)
    leads_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = EtapaCotizacion
        fields = ["id", "nombre", "color", "created_at", "campos", "leads_count"]
        read_only_fields = ["id", "created_at"]

    def validate_nombre(self, value):
        value = " ".join(value.split())
        if not value:
            raise serializers.ValidationError("El nombre es obligatorio.")
        # Unicidad sobre el nombre ya normalizado, sin distinguir mayúsculas.
        duplicadas = EtapaCotizacion.objects.filter(nombre__iexact=value)
        if self.instance is not None:
            duplicadas = duplicadas.exclude(pk=self.instance.pk)
        if duplicadas.exists():
            raise serializers.ValidationError(f"Ya existe la etapa {value}.")
        return value


class HistorialEtapaSerializer(serializers.ModelSerializer):
    class Meta:
        model = HistorialEtapa
        fields = ["id", "etapa", "etapa_nombre", "fecha", "datos_formulario"]


class CotizacionSerializer(serializers.ModelSerializer):
    cliente_nombre = serializers.CharField(source="cliente.nombre_completo", read_only=True)
    vendedor_nombre = serializers.SerializerMethodField()
    etapa_nombre = serializers.CharField(source="etapa.nombre", read_only=True)
    sucursal_nombre = serializers.CharField(source="sucursal.nombre", read_only=True, default="")

    class Meta:
        model = Cotizacion
        fields = [
            "id",
            "codigo",
            "nombre",
            "cliente",
            "cliente_nombre",
            "vendedor",
            "vendedor_nombre",
            "etapa",
            "etapa_nombre",
            "monto_total",
            "detalle",
            "sucursal",
            "sucursal_nombre",
            "tipo_abertura",
            "como_nos_conocio",
            "orden",
            *Cotizacion.LISTAS_ADJUNTOS,
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_vendedor_nombre(self, obj):
        return _nombre_usuario(obj.vendedor)


class CotizacionDetalleSerializer(CotizacionSerializer):
    historial = HistorialEtapaSerializer(source="historial_etapas", many=True, read_only=True)

    class Meta(CotizacionSerializer.Meta):
        fields = CotizacionSerializer.Meta.fields + ["historial"]
        read_only_fields = fields


class CotizacionCreateSerializer(serializers.Serializer):
    cliente_id = serializers.IntegerField()
    etapa_id = serializers.IntegerField(required=False, allow_null=True)
    sucursal_id = serializers.IntegerField(required=False, allow_null=True)
    monto_total = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True
    )
    nombre = serializers.CharField(max_length=200, required=False, allow_blank=True, default="")
    tipo_abertura = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    como_nos_conocio = serializers.CharField(max_length=120, required=False, allow_blank=True, default="")
    detalle = serializers.CharField(required=False, allow_blank=True, default="")
    archivos = serializers.ListField(required=False, default=list)


class CotizacionUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Cotizacion
        fields = ["nombre", "monto_total", "sucursal", "tipo_abertura", "como_nos_conocio", "detalle"]
        extra_kwargs = {"monto_total": {"min_value": Decimal("0")}}


class MoverCotizacionSerializer(serializers.Serializer):
    etapa_id = serializers.IntegerField()
    datos_formulario = serializers.DictField(required=False, default=dict)
    monto_total = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=Decimal("0"), required=False, allow_null=True
    )


class ReordenarSerializer(serializers.Serializer):
    stage_id = serializers.IntegerField()
    ordered_quote_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=True)
