# Generated manually
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


def _empresa_fields():
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("razon_social", models.CharField(max_length=200)),
        ("razon_social_normalizada", models.CharField(db_index=True, default="", editable=False, max_length=200)),
        ("nombre_fantasia", models.CharField(blank=True, default="", max_length=200)),
        ("domicilio", models.CharField(blank=True, default="", max_length=255)),
        ("barrio", models.CharField(blank=True, default="", max_length=120)),
        ("localidad", models.CharField(blank=True, default="", max_length=120)),
        ("provincia", models.CharField(blank=True, default="", max_length=120)),
        ("codigo_postal", models.CharField(blank=True, default="", max_length=20)),
        ("pais", models.CharField(blank=True, default="", max_length=80)),
        ("telefono", models.CharField(blank=True, default="", max_length=40)),
        ("email", models.EmailField(blank=True, default="", max_length=254)),
        ("cuit", models.CharField(blank=True, default="", max_length=20)),
        ("categoria_iva", models.CharField(blank=True, default="", max_length=60)),
        ("inscripto_ganancias", models.BooleanField(default=False)),
        ("notas", models.TextField(blank=True, default="")),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Empresa",
            fields=_empresa_fields()
            + [
                (
                    "creado_por",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="crm_empresas_creadas",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Empresa",
                "verbose_name_plural": "Empresas",
                "ordering": ["razon_social"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Proveedor",
            fields=_empresa_fields()
            + [
                ("proveedor_id", models.CharField(blank=True, default="", max_length=40)),
                ("fecha_vto_cai", models.DateField(blank=True, null=True)),
                (
                    "sucursal",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="proveedores",
                        to="core.sucursal",
                    ),
                ),
                (
                    "creado_por",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="crm_proveedores_creados",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Proveedor",
                "verbose_name_plural": "Proveedores",
                "ordering": ["razon_social"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Cliente",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("nombre_completo", models.CharField(max_length=180)),
                ("nombre_normalizado", models.CharField(db_index=True, editable=False, max_length=180)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("telefono", models.CharField(max_length=40)),
                ("empresa", models.CharField(blank=True, default="", max_length=200)),
                ("direccion_empresa", models.CharField(blank=True, default="", max_length=255)),
                ("ciudad_empresa", models.CharField(blank=True, default="", max_length=120)),
                ("pais_empresa", models.CharField(blank=True, default="", max_length=80)),
                ("razon_social", models.CharField(blank=True, default="", max_length=200)),
                ("contacto_empresa", models.CharField(blank=True, default="", max_length=160)),
                ("cuil", models.CharField(blank=True, default="", max_length=20)),
                ("prioridad", models.CharField(blank=True, default="Media", max_length=60)),
                ("origen_contacto", models.CharField(blank=True, default="", max_length=120)),
                ("direccion", models.CharField(blank=True, default="", max_length=255)),
                ("pais", models.CharField(blank=True, default="", max_length=80)),
                ("dni", models.CharField(blank=True, default="", max_length=20)),
                ("ciudad", models.CharField(blank=True, default="", max_length=120)),
                ("notas", models.TextField(blank=True, default="")),
                (
                    "etapa",
                    models.CharField(
                        choices=[
                            ("Nuevo", "Nuevo"),
                            ("Contactado", "Contactado"),
                            ("Cotizado", "Cotizado"),
                            ("Negociación", "Negociación"),
                            ("Ganado", "Ganado"),
                            ("Perdido", "Perdido"),
                        ],
                        default="Nuevo",
                        max_length=20,
                    ),
                ),
                ("motivo_rechazo", models.CharField(blank=True, default="", max_length=160)),
                ("detalle_rechazo", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "empresa_asignada",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="clientes",
                        to="crm.empresa",
                    ),
                ),
                (
                    "vendedor_asignado",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="crm_clientes_asignados",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="Nota",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("contenido", models.TextField()),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "cliente",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notas_cliente",
                        to="crm.cliente",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="Interaccion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "tipo",
                    models.CharField(
                        choices=[
                            ("Llamada", "Llamada"),
                            ("WhatsApp", "WhatsApp"),
                            ("Email", "Email"),
                            ("Reunión", "Reunión"),
                            ("Nota", "Nota"),
                        ],
                        max_length=20,
                    ),
                ),
                ("nota", models.TextField()),
                ("fecha", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "cliente",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="interacciones",
                        to="crm.cliente",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-fecha", "-id"]},
        ),
        migrations.CreateModel(
            name="Tarea",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("titulo", models.CharField(max_length=200)),
                ("descripcion", models.TextField(blank=True, default="")),
                (
                    "prioridad",
                    models.CharField(
                        choices=[("Alta", "Alta"), ("Media", "Media"), ("Baja", "Baja")],
                        default="Baja",
                        max_length=10,
                    ),
                ),
                ("fecha_vencimiento", models.DateField()),
                ("hora_inicio", models.TimeField(blank=True, null=True)),
                ("hora_fin", models.TimeField(blank=True, null=True)),
                ("completada", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "cliente",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tareas",
                        to="crm.cliente",
                    ),
                ),
                (
                    "vendedor_asignado",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="crm_tareas",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["fecha_vencimiento", "hora_inicio", "id"]},
        ),
        migrations.CreateModel(
            name="EtapaCotizacion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("nombre", models.CharField(max_length=120, unique=True)),
                ("color", models.CharField(default="#cccccc", max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Etapa de cotización",
                "verbose_name_plural": "Etapas de cotización",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="FormularioEtapa",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("campos", models.JSONField(blank=True, default=list)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "etapa",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="formulario",
                        to="crm.etapacotizacion",
                    ),
                ),
            ],
            options={"verbose_name": "Formulario de etapa", "verbose_name_plural": "Formularios de etapa"},
        ),
        migrations.CreateModel(
            name="Cotizacion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("codigo", models.CharField(blank=True, max_length=40, unique=True)),
                ("nombre", models.CharField(blank=True, default="", max_length=200)),
                ("monto_total", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("detalle", models.TextField(blank=True, default="")),
                ("tipo_abertura", models.CharField(blank=True, default="", max_length=120)),
                ("como_nos_conocio", models.CharField(blank=True, default="", max_length=120)),
                ("orden", models.PositiveIntegerField(default=0)),
                ("archivos", models.JSONField(blank=True, default=list)),
                ("facturas", models.JSONField(blank=True, default=list)),
                ("pagos", models.JSONField(blank=True, default=list)),
                ("imagenes", models.JSONField(blank=True, default=list)),
                ("materiales", models.JSONField(blank=True, default=list)),
                ("tickets", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "cliente",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="cotizaciones",
                        to="crm.cliente",
                    ),
                ),
                (
                    "etapa",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="cotizaciones",
                        to="crm.etapacotizacion",
                    ),
                ),
                (
                    "sucursal",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="cotizaciones",
                        to="core.sucursal",
                    ),
                ),
                (
                    "vendedor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="crm_cotizaciones",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Cotización",
                "verbose_name_plural": "Cotizaciones",
                "ordering": ["etapa", "orden", "-created_at"],
            },
        ),
        migrations.CreateModel(
            name="HistorialEtapa",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("etapa_nombre", models.CharField(blank=True, default="", max_length=120)),
                ("fecha", models.DateTimeField(default=django.utils.timezone.now)),
                ("datos_formulario", models.JSONField(blank=True, default=dict)),
                (
                    "cotizacion",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="historial_etapas",
                        to="crm.cotizacion",
                    ),
                ),
                (
                    "etapa",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="crm.etapacotizacion",
                    ),
                ),
            ],
            options={
                "verbose_name": "Historial de etapa",
                "verbose_name_plural": "Historial de etapas",
                "ordering": ["id"],
            },
        ),
    ]
