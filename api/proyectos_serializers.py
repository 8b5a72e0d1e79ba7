from rest_framework import serializers

from proyectos.models import Proyecto


class ProyectoSerializer(serializers.ModelSerializer):
    cliente_nombre = serializers.CharField(source="cliente.nombre_completo", read_only=True)
    cliente_telefono = serializers.CharField(source="cliente.telefono", read_only=True)
    cotizacion_codigo = serializers.CharField(source="cotizacion.codigo", read_only=True, default="")
    vendedor_nombre = serializers.SerializerMethodField()

    class Meta:
        model = Proyecto
        fields = [
            "id",
            "numero_orden",
            "cliente",
            "cliente_nombre",
            "cliente_telefono",
            "cotizacion",
            "cotizacion_codigo",
            "vendedor",
            "vendedor_nombre",
            "estado_actual",
            "visita_tecnica",
            "medicion",
            "verificacion",
            "taller",
            "deposito",
            "logistica",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_vendedor_nombre(self, obj):
        if obj.vendedor is None:
            return ""
        return obj.vendedor.first_name or obj.vendedor.username


class ProyectoCreateSerializer(serializers.Serializer):
    cliente_id = serializers.IntegerField()
    cotizacion_id = serializers.IntegerField(required=False, allow_null=True)


class ProyectoUpdateSerializer(serializers.Serializer):
    etapa_a_completar = serializers.CharField(required=False, allow_blank=True)
    datos_formulario = serializers.DictField(required=False)
    forzar_estado = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    estado_actual = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        if attrs.get("etapa_a_completar") and "datos_formulario" not in attrs:
            attrs["datos_formulario"] = {}
        if not attrs.get("etapa_a_completar") and "datos_formulario" not in attrs and "estado_actual" not in attrs:
            raise serializers.ValidationError(
                "Envía etapa_a_completar, datos_formulario o estado_actual para actualizar el proyecto."
            )
        return attrs
