# Generated manually
from decimal import Decimal

from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone

UOM_CHOICES = [("UN", "Unidad"), ("M", "Metro"), ("M2", "Metro cuadrado"), ("KG", "Kilogramo")]
REF_KIND_CHOICES = [
    ("PO", "Orden de compra"),
    ("SO", "Orden de venta"),
    ("PROJECT", "Proyecto"),
    ("QUOTE", "Cotización"),
    ("COUNT", "Conteo"),
    ("MANUAL", "Manual"),
    ("PRODUCTION", "Producción"),
]


def _qty(**kwargs):
    return models.DecimalField(decimal_places=3, max_digits=18, **kwargs)


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Item",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[("FINISHED", "Producto terminado"), ("COMPONENT", "Componente"), ("SERVICE", "Servicio")],
                        max_length=12,
                    ),
                ),
                ("sku", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(max_length=256)),
                ("brand", models.CharField(blank=True, default="", max_length=128)),
                ("category", models.CharField(max_length=128)),
                ("uom", models.CharField(choices=UOM_CHOICES, max_length=4)),
                ("track_lot", models.BooleanField(default=False)),
                ("track_serial", models.BooleanField(default=False)),
                ("attributes", models.JSONField(blank=True, default=dict)),
                ("active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"verbose_name": "Artículo", "verbose_name_plural": "Artículos", "ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="Warehouse",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=128)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("MAIN", "Principal"),
                            ("WORKSHOP", "Taller"),
                            ("JOB_SITE", "Obra"),
                            ("CONSIGNMENT", "Consignación"),
                        ],
                        max_length=12,
                    ),
                ),
                ("address", models.CharField(blank=True, default="", max_length=256)),
                ("active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"verbose_name": "Depósito", "verbose_name_plural": "Depósitos", "ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="Location",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=64)),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("STORAGE", "Almacenaje"),
                            ("PICK", "Picking"),
                            ("QUARANTINE", "Cuarentena"),
                            ("DAMAGED", "Dañado"),
                        ],
                        default="STORAGE",
                        max_length=12,
                    ),
                ),
                ("active", models.BooleanField(default=True)),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="locations",
                        to="inventario.warehouse",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ubicación",
                "verbose_name_plural": "Ubicaciones",
                "ordering": ["warehouse__name", "code"],
            },
        ),
        migrations.AddConstraint(
            model_name="location",
            constraint=models.UniqueConstraint(fields=("warehouse", "code"), name="uniq_location_warehouse_code"),
        ),
        migrations.CreateModel(
            name="ItemMinStock",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("min", _qty(default=0, validators=[django.core.validators.MinValueValidator(Decimal("0"))])),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="min_stock", to="inventario.item"
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="+", to="inventario.warehouse"
                    ),
                ),
            ],
        ),
        migrations.AddConstraint(
            model_name="itemminstock",
            constraint=models.UniqueConstraint(fields=("item", "warehouse"), name="uniq_item_min_stock_warehouse"),
        ),
        migrations.CreateModel(
            name="StockBalance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("on_hand", _qty(default=0)),
                ("reserved", _qty(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="balances", to="inventario.item"
                    ),
                ),
                (
                    "location",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="balances",
                        to="inventario.location",
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="balances", to="inventario.warehouse"
                    ),
                ),
            ],
            options={
                "verbose_name": "Saldo de stock",
                "verbose_name_plural": "Saldos de stock",
                "ordering": ["item__name", "warehouse__name"],
            },
        ),
        migrations.AddConstraint(
            model_name="stockbalance",
            constraint=models.UniqueConstraint(
                condition=models.Q(("location__isnull", False)),
                fields=("item", "warehouse", "location"),
                name="uniq_balance_item_wh_location",
            ),
        ),
        migrations.AddConstraint(
            model_name="stockbalance",
            constraint=models.UniqueConstraint(
                condition=models.Q(("location__isnull", True)),
                fields=("item", "warehouse"),
                name="uniq_balance_item_wh_sin_location",
            ),
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("IN", "Ingreso"),
                            ("OUT", "Egreso"),
                            ("ADJUST", "Ajuste"),
                            ("TRANSFER", "Transferencia"),
                            ("RESERVE", "Reserva"),
                            ("UNRESERVE", "Liberación de reserva"),
                            ("PRODUCE", "Producción"),
                        ],
                        max_length=12,
                    ),
                ),
                ("qty", _qty()),
                ("uom", models.CharField(choices=UOM_CHOICES, max_length=4)),
                ("unit_cost", models.DecimalField(blank=True, decimal_places=4, max_digits=18, null=True)),
                ("lot", models.CharField(blank=True, default="", max_length=64)),
                ("serial", models.CharField(blank=True, default="", max_length=128)),
                ("note", models.CharField(blank=True, default="", max_length=512)),
                ("ref_kind", models.CharField(blank=True, choices=REF_KIND_CHOICES, default="", max_length=12)),
                ("ref_id", models.CharField(blank=True, default="", max_length=64)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="movements", to="inventario.item"
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="movements", to="inventario.warehouse"
                    ),
                ),
                (
                    "location",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="movements",
                        to="inventario.location",
                    ),
                ),
                (
                    "from_warehouse",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_out",
                        to="inventario.warehouse",
                    ),
                ),
                (
                    "from_location",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_out",
                        to="inventario.location",
                    ),
                ),
                (
                    "to_warehouse",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_in",
                        to="inventario.warehouse",
                    ),
                ),
                (
                    "to_location",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transfers_in",
                        to="inventario.location",
                    ),
                ),
            ],
            options={
                "verbose_name": "Movimiento de stock",
                "verbose_name_plural": "Movimientos de stock",
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="StockReservation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("ref_kind", models.CharField(choices=REF_KIND_CHOICES, max_length=12)),
                ("ref_id", models.CharField(max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[("ACTIVE", "Activa"), ("RELEASED", "Liberada"), ("CONSUMED", "Consumida")],
                        default="ACTIVE",
                        max_length=10,
                    ),
                ),
                ("note", models.CharField(blank=True, default="", max_length=512)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_reservations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "warehouse",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reservations",
                        to="inventario.warehouse",
                    ),
                ),
            ],
            options={
                "verbose_name": "Reserva de stock",
                "verbose_name_plural": "Reservas de stock",
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="StockReservationLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("qty", _qty(validators=[django.core.validators.MinValueValidator(Decimal("0.001"))])),
                ("uom", models.CharField(choices=UOM_CHOICES, max_length=4)),
                ("lot", models.CharField(blank=True, default="", max_length=64)),
                (
                    "item",
                    models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="+", to="inventario.item"),
                ),
                (
                    "reservation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="inventario.stockreservation",
                    ),
                ),
            ],
            options={"ordering": ["id"]},
        ),
        migrations.CreateModel(
            name="Bom",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "version",
                    models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)]),
                ),
                ("active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "finished_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT, related_name="boms", to="inventario.item"
                    ),
                ),
            ],
            options={
                "verbose_name": "Lista de materiales",
                "verbose_name_plural": "Listas de materiales",
                "ordering": ["finished_item__name", "-version"],
            },
        ),
        migrations.AddConstraint(
            model_name="bom",
            constraint=models.UniqueConstraint(fields=("finished_item", "version"), name="uniq_bom_item_version"),
        ),
        migrations.CreateModel(
            name="BomLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("qty", _qty(validators=[django.core.validators.MinValueValidator(Decimal("0.001"))])),
                ("uom", models.CharField(choices=UOM_CHOICES, max_length=4)),
                (
                    "bom",
                    models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="inventario.bom"),
                ),
                (
                    "component_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="used_in_bom_lines",
                        to="inventario.item",
                    ),
                ),
            ],
            options={"ordering": ["id"]},
        ),
    ]
