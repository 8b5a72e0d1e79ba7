from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

UOM_UN = "UN"
UOM_M = "M"
UOM_M2 = "M2"
UOM_KG = "KG"
UOM_CHOICES = [
    (UOM_UN, "Unidad"),
    (UOM_M, "Metro"),
    (UOM_M2, "Metro cuadrado"),
    (UOM_KG, "Kilogramo"),
]

REF_PO = "PO"
REF_SO = "SO"
REF_PROJECT = "PROJECT"
REF_QUOTE = "QUOTE"
REF_COUNT = "COUNT"
REF_MANUAL = "MANUAL"
REF_PRODUCTION = "PRODUCTION"
REF_KIND_CHOICES = [
    (REF_PO, "Orden de compra"),
    (REF_SO, "Orden de venta"),
    (REF_PROJECT, "Proyecto"),
    (REF_QUOTE, "Cotización"),
    (REF_COUNT, "Conteo"),
    (REF_MANUAL, "Manual"),
    (REF_PRODUCTION, "Producción"),
]

QTY_MAX_DIGITS = 18
QTY_DECIMALS = 3


def _qty_field(**kwargs):
    return models.DecimalField(max_digits=QTY_MAX_DIGITS, decimal_places=QTY_DECIMALS, **kwargs)


class Item(models.Model):
    TYPE_FINISHED = "FINISHED"
    TYPE_COMPONENT = "COMPONENT"
    TYPE_SERVICE = "SERVICE"
    TYPE_CHOICES = [
        (TYPE_FINISHED, "Producto terminado"),
        (TYPE_COMPONENT, "Componente"),
        (TYPE_SERVICE, "Servicio"),
    ]

    type = models.CharField(max_length=12, choices=TYPE_CHOICES)
    sku = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=256)
    brand = models.CharField(max_length=128, blank=True, default="")
    category = models.CharField(max_length=128)
    uom = models.CharField(max_length=4, choices=UOM_CHOICES)
    track_lot = models.BooleanField(default=False)
    track_serial = models.BooleanField(default=False)
    attributes = models.JSONField(default=dict, blank=True)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Artículo"
        verbose_name_plural = "Artículos"
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.sku} - {self.name}"


class Warehouse(models.Model):
    TYPE_MAIN = "MAIN"
    TYPE_WORKSHOP = "WORKSHOP"
    TYPE_JOB_SITE = "JOB_SITE"
    TYPE_CONSIGNMENT = "CONSIGNMENT"
    TYPE_CHOICES = [
        (TYPE_MAIN, "Principal"),
        (TYPE_WORKSHOP, "Taller"),
        (TYPE_JOB_SITE, "Obra"),
        (TYPE_CONSIGNMENT, "Consignación"),
    ]

    name = models.CharField(max_length=128)
    type = models.CharField(max_length=12, choices=TYPE_CHOICES)
    address = models.CharField(max_length=256, blank=True, default="")
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Depósito"
        verbose_name_plural = "Depósitos"
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Location(models.Model):
    TYPE_STORAGE = "STORAGE"
    TYPE_PICK = "PICK"
    TYPE_QUARANTINE = "QUARANTINE"
    TYPE_DAMAGED = "DAMAGED"
    TYPE_CHOICES = [
        (TYPE_STORAGE, "Almacenaje"),
        (TYPE_PICK, "Picking"),
        (TYPE_QUARANTINE, "Cuarentena"),
        (TYPE_DAMAGED, "Dañado"),
    ]

    warehouse = models.ForeignKey(Warehouse, on_delete=models.CASCADE, related_name="locations")
    code = models.CharField(max_length=64)
    type = models.CharField(max_length=12, choices=TYPE_CHOICES, default=TYPE_STORAGE)
    active = models.BooleanField(default=True)

    class Meta:
        verbose_name = "Ubicación"
        verbose_name_plural = "Ubicaciones"
        ordering = ["warehouse__name", "code"]
        constraints = [
            models.UniqueConstraint(fields=["warehouse", "code"], name="uniq_location_warehouse_code"),
        ]

    def __str__(self) -> str:
        return f"{self.warehouse.name} / {self.code}"


class ItemMinStock(models.Model):
    item = models.ForeignKey(Item, on_delete=models.CASCADE, related_name="min_stock")
    warehouse = models.ForeignKey(Warehouse, on_delete=models.CASCADE, related_name="+")
    min = _qty_field(default=0, validators=[MinValueValidator(Decimal("0"))])

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["item", "warehouse"], name="uniq_item_min_stock_warehouse"),
        ]

    def __str__(self) -> str:
        return f"{self.item.sku} @ {self.warehouse.name}: {self.min}"


class StockBalance(models.Model):
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="balances")
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="balances")
    location = models.ForeignKey(Location, on_delete=models.PROTECT, null=True, blank=True, related_name="balances")
    on_hand = _qty_field(default=0)
    reserved = _qty_field(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Saldo de stock"
        verbose_name_plural = "Saldos de stock"
        ordering = ["item__name", "warehouse__name"]
        constraints = [
            models.UniqueConstraint(
                fields=["item", "warehouse", "location"],
                condition=Q(location__isnull=False),
                name="uniq_balance_item_wh_location",
            ),
            models.UniqueConstraint(
                fields=["item", "warehouse"],
                condition=Q(location__isnull=True),
                name="uniq_balance_item_wh_sin_location",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.item.sku} @ {self.warehouse.name}: {self.on_hand}"

    @property
    def available(self) -> Decimal:
        return self.on_hand - self.reserved


class StockMovement(models.Model):
    TYPE_IN = "IN"
    TYPE_OUT = "OUT"
    TYPE_ADJUST = "ADJUST"
    TYPE_TRANSFER = "TRANSFER"
    TYPE_RESERVE = "RESERVE"
    TYPE_UNRESERVE = "UNRESERVE"
    TYPE_PRODUCE = "PRODUCE"
    TYPE_CHOICES = [
        (TYPE_IN, "Ingreso"),
        (TYPE_OUT, "Egreso"),
        (TYPE_ADJUST, "Ajuste"),
        (TYPE_TRANSFER, "Transferencia"),
        (TYPE_RESERVE, "Reserva"),
        (TYPE_UNRESERVE, "Liberación de reserva"),
        (TYPE_PRODUCE, "Producción"),
    ]

    type = models.CharField(max_length=12, choices=TYPE_CHOICES)
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="movements")
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="movements")
    location = models.ForeignKey(Location, on_delete=models.PROTECT, null=True, blank=True, related_name="movements")
    from_warehouse = models.ForeignKey(
        Warehouse, on_delete=models.PROTECT, null=True, blank=True, related_name="transfers_out"
    )
    from_location = models.ForeignKey(
        Location, on_delete=models.PROTECT, null=True, blank=True, related_name="transfers_out"
    )
    to_warehouse = models.ForeignKey(
        Warehouse, on_delete=models.PROTECT, null=True, blank=True, related_name="transfers_in"
    )
    to_location = models.ForeignKey(
        Location, on_delete=models.PROTECT, null=True, blank=True, related_name="transfers_in"
    )
    # Con signo: negativo para egresos.
    qty = _qty_field()
    uom = models.CharField(max_length=4, choices=UOM_CHOICES)
    unit_cost = models.DecimalField(max_digits=18, decimal_places=4, null=True, blank=True)
    lot = models.CharField(max_length=64, blank=True, default="")
    serial = models.CharField(max_length=128, blank=True, default="")
    note = models.CharField(max_length=512, blank=True, default="")
    ref_kind = models.CharField(max_length=12, choices=REF_KIND_CHOICES, blank=True, default="")
    ref_id = models.CharField(max_length=64, blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        verbose_name = "Movimiento de stock"
        verbose_name_plural = "Movimientos de stock"
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.type} {self.item.sku} {self.qty}"


class StockReservation(models.Model):
    STATUS_ACTIVE = "ACTIVE"
    STATUS_RELEASED = "RELEASED"
    STATUS_CONSUMED = "CONSUMED"
    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Activa"),
        (STATUS_RELEASED, "Liberada"),
        (STATUS_CONSUMED, "Consumida"),
    ]

    ref_kind = models.CharField(max_length=12, choices=REF_KIND_CHOICES)
    ref_id = models.CharField(max_length=64)
    warehouse = models.ForeignKey(Warehouse, on_delete=models.PROTECT, related_name="reservations")
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    note = models.CharField(max_length=512, blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_reservations",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Reserva de stock"
        verbose_name_plural = "Reservas de stock"
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.ref_kind}/{self.ref_id} ({self.status})"


class StockReservationLine(models.Model):
    reservation = models.ForeignKey(StockReservation, on_delete=models.CASCADE, related_name="lines")
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="+")
    qty = _qty_field(validators=[MinValueValidator(Decimal("0.001"))])
    uom = models.CharField(max_length=4, choices=UOM_CHOICES)
    lot = models.CharField(max_length=64, blank=True, default="")

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.item.sku} x {self.qty}"


class Bom(models.Model):
    finished_item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="boms")
    version = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Lista de materiales"
        verbose_name_plural = "Listas de materiales"
        ordering = ["finished_item__name", "-version"]
        constraints = [
            models.UniqueConstraint(fields=["finished_item", "version"], name="uniq_bom_item_version"),
        ]

    def __str__(self) -> str:
        return f"BOM {self.finished_item.sku} v{self.version}"


class BomLine(models.Model):
    bom = models.ForeignKey(Bom, on_delete=models.CASCADE, related_name="lines")
    component_item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="used_in_bom_lines")
    qty = _qty_field(validators=[MinValueValidator(Decimal("0.001"))])
    uom = models.CharField(max_length=4, choices=UOM_CHOICES)

    class Meta:
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.component_item.sku} x {self.qty}"
