from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from inventario.models import (
    REF_KIND_CHOICES,
    UOM_CHOICES,
    Bom,
    BomLine,
    Item,
    ItemMinStock,
    Location,
    StockBalance,
    StockMovement,
    StockReservation,
    StockReservationLine,
    Warehouse,
)

QTY = {"max_digits": 18, "decimal_places": 3}
MIN_QTY = Decimal("0.001")


class ItemMinStockSerializer(serializers.ModelSerializer):
    warehouse_nombre = serializers.CharField(source="warehouse.name", read_only=True)

    class Meta:
        model = ItemMinStock
        fields = ["warehouse", "warehouse_nombre", "min"]


class ItemSerializer(serializers.ModelSerializer):
    min_stock = ItemMinStockSerializer(many=True, required=False)

    class Meta:
        model = Item
        fields = [
            "id",
            "type",
            "sku",
            "name",
            "brand",
            "category",
            "uom",
            "track_lot",
            "track_serial",
            "attributes",
            "active",
            "min_stock",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_sku(self, value):
        value = value.strip().upper()
        if not value:
            raise serializers.ValidationError("El SKU es obligatorio.")
        return value

    def validate_min_stock(self, value):
        warehouses = [row["warehouse"].id for row in value]
        if len(warehouses) != len(set(warehouses)):
            raise serializers.ValidationError("Hay depósitos repetidos en los mínimos.")
        return value

    @staticmethod
    def _guardar_minimos(item, minimos):
        ItemMinStock.objects.filter(item=item).delete()
        ItemMinStock.objects.bulk_create(
            [ItemMinStock(item=item, warehouse=row["warehouse"], min=row["min"]) for row in minimos]
        )

    @transaction.atomic
    def create(self, validated_data):
        minimos = validated_data.pop("min_stock", [])
        item = Item.objects.create(**validated_data)
        self._guardar_minimos(item, minimos)
        return item

    @transaction.atomic
    def update(self, instance, validated_data):
        minimos = validated_data.pop("min_stock", None)
        item = super().update(instance, validated_data)
        if minimos is not None:
            self._guardar_minimos(item, minimos)
        return item


class LocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Location
        fields = ["id", "warehouse", "code", "type", "active"]
        read_only_fields = ["id", "warehouse"]
        # La unicidad (warehouse, code) se valida en la vista: warehouse viene de la URL.
        validators = []


class WarehouseSerializer(serializers.ModelSerializer):
    locations_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Warehouse
        fields = ["id", "name", "type", "address", "active", "locations_count", "created_at"]
        read_only_fields = ["id", "created_at"]


class StockBalanceSerializer(serializers.ModelSerializer):
    item_sku = serializers.CharField(source="item.sku", read_only=True)
    item_name = serializers.CharField(source="item.name", read_only=True)
    uom = serializers.CharField(source="item.uom", read_only=True)
    warehouse_name = serializers.CharField(source="warehouse.name", read_only=True)
    location_code = serializers.CharField(source="location.code", read_only=True, default="")
    available = serializers.DecimalField(**QTY, read_only=True)

    class Meta:
        model = StockBalance
        fields = [
            "id",
            "item",
            "item_sku",
            "item_name",
            "uom",
            "warehouse",
            "warehouse_name",
            "location",
            "location_code",
            "on_hand",
            "reserved",
            "available",
            "updated_at",
        ]
        read_only_fields = fields


class StockMovementSerializer(serializers.ModelSerializer):
    item_sku = serializers.CharField(source="item.sku", read_only=True)
    warehouse_name = serializers.CharField(source="warehouse.name", read_only=True)
    created_by_nombre = serializers.CharField(source="created_by.username", read_only=True, default="")

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "type",
            "item",
            "item_sku",
            "warehouse",
            "warehouse_name",
            "location",
            "from_warehouse",
            "from_location",
            "to_warehouse",
            "to_location",
            "qty",
            "uom",
            "unit_cost",
            "lot",
            "serial",
            "note",
            "ref_kind",
            "ref_id",
            "created_by",
            "created_by_nombre",
            "created_at",
        ]
        read_only_fields = fields


class MovementCreateSerializer(serializers.Serializer):
    TYPES = [
        StockMovement.TYPE_IN,
        StockMovement.TYPE_OUT,
        StockMovement.TYPE_ADJUST,
        StockMovement.TYPE_TRANSFER,
    ]

    type = serializers.ChoiceField(choices=TYPES)
    item_id = serializers.IntegerField()
    qty = serializers.DecimalField(**QTY)
    uom = serializers.ChoiceField(choices=UOM_CHOICES, required=False)
    warehouse_id = serializers.IntegerField(required=False)
    location_id = serializers.IntegerField(required=False, allow_null=True)
    from_warehouse_id = serializers.IntegerField(required=False)
    to_warehouse_id = serializers.IntegerField(required=False)
    from_location_id = serializers.IntegerField(required=False, allow_null=True)
    to_location_id = serializers.IntegerField(required=False, allow_null=True)
    unit_cost = serializers.DecimalField(max_digits=18, decimal_places=4, required=False, allow_null=True)
    lot = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    serial = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    note = serializers.CharField(max_length=512, required=False, allow_blank=True, default="")
    ref_kind = serializers.ChoiceField(choices=REF_KIND_CHOICES, required=False, allow_blank=True, default="")
    ref_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["type"] == StockMovement.TYPE_TRANSFER:
            if not attrs.get("from_warehouse_id") or not attrs.get("to_warehouse_id"):
                raise serializers.ValidationError("TRANSFER requiere from_warehouse_id y to_warehouse_id.")
        elif not attrs.get("warehouse_id"):
            raise serializers.ValidationError(f"{attrs['type']} requiere warehouse_id.")
        return attrs


class ReservationLineInputSerializer(serializers.Serializer):
    item_id = serializers.IntegerField()
    qty = serializers.DecimalField(**QTY, min_value=MIN_QTY)
    uom = serializers.ChoiceField(choices=UOM_CHOICES, required=False)
    lot = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    location_id = serializers.IntegerField(required=False, allow_null=True)


class ReservationCreateSerializer(serializers.Serializer):
    ref_kind = serializers.ChoiceField(choices=REF_KIND_CHOICES)
    ref_id = serializers.CharField(max_length=64)
    warehouse_id = serializers.IntegerField()
    note = serializers.CharField(max_length=512, required=False, allow_blank=True, default="")
    lines = ReservationLineInputSerializer(many=True, allow_empty=False)


class StockReservationLineSerializer(serializers.ModelSerializer):
    item_sku = serializers.CharField(source="item.sku", read_only=True)

    class Meta:
        model = StockReservationLine
        fields = ["id", "item", "item_sku", "qty", "uom", "lot"]


class StockReservationSerializer(serializers.ModelSerializer):
    lines = StockReservationLineSerializer(many=True, read_only=True)
    warehouse_name = serializers.CharField(source="warehouse.name", read_only=True)

    class Meta:
        model = StockReservation
        fields = [
            "id",
            "ref_kind",
            "ref_id",
            "warehouse",
            "warehouse_name",
            "status",
            "note",
            "lines",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class BomLineSerializer(serializers.ModelSerializer):
    component_sku = serializers.CharField(source="component_item.sku", read_only=True)
    qty = serializers.DecimalField(**QTY, min_value=MIN_QTY)

    class Meta:
        model = BomLine
        fields = ["id", "component_item", "component_sku", "qty", "uom"]
        read_only_fields = ["id"]


class BomSerializer(serializers.ModelSerializer):
    finished_sku = serializers.CharField(source="finished_item.sku", read_only=True)
    lines = BomLineSerializer(many=True)

    class Meta:
        model = Bom
        fields = ["id", "finished_item", "finished_sku", "version", "active", "lines", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_lines(self, value):
        if not value:
            raise serializers.ValidationError("La BOM necesita al menos una línea.")
        return value

    def validate(self, attrs):
        finished = attrs.get("finished_item", getattr(self.instance, "finished_item", None))
        for line in attrs.get("lines") or []:
            if finished is not None and line["component_item"].id == finished.id:
                raise serializers.ValidationError("Un artículo no puede ser componente de sí mismo.")
        return attrs

    @staticmethod
    def _guardar_lineas(bom, lines):
        BomLine.objects.filter(bom=bom).delete()
        BomLine.objects.bulk_create([BomLine(bom=bom, **line) for line in lines])

    @transaction.atomic
    def create(self, validated_data):
        lines = validated_data.pop("lines")
        bom = Bom.objects.create(**validated_data)
        self._guardar_lineas(bom, lines)
        return bom

    @transaction.atomic
    def update(self, instance, validated_data):
        lines = validated_data.pop("lines", None)
        bom = super().update(instance, validated_data)
        if lines is not None:
            self._guardar_lineas(bom, lines)
        return bom


class ConsumeLineInputSerializer(serializers.Serializer):
    component_item_id = serializers.IntegerField()
    qty = serializers.DecimalField(**QTY, min_value=MIN_QTY)
    uom = serializers.ChoiceField(choices=UOM_CHOICES, required=False)
    warehouse_id = serializers.IntegerField(required=False, allow_null=True)
    location_id = serializers.IntegerField(required=False, allow_null=True)


class ProduceSerializer(serializers.Serializer):
    finished_item_id = serializers.IntegerField()
    warehouse_id = serializers.IntegerField()
    qty = serializers.DecimalField(**QTY, min_value=MIN_QTY, required=False, default=Decimal("1"))
    location_id = serializers.IntegerField(required=False, allow_null=True)
    override_consume_lines = ConsumeLineInputSerializer(many=True, required=False)
    ref_kind = serializers.ChoiceField(choices=REF_KIND_CHOICES, required=False, allow_blank=True, default="")
    ref_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    note = serializers.CharField(max_length=512, required=False, allow_blank=True, default="")
