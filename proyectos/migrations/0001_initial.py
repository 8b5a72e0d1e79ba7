# Generated manually
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("crm", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Proyecto",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("numero_orden", models.CharField(blank=True, max_length=40, unique=True)),
                (
                    "estado_actual",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("Visita Técnica", "Visita Técnica"),
                            ("Medición", "Medición"),
                            ("Verificación", "Verificación"),
                            ("Taller", "Taller"),
                            ("Depósito", "Depósito"),
                            ("Logística", "Logística"),
                            ("Instalación", "Instalación"),
                            ("Retiro Cliente", "Retiro Cliente"),
                            ("Completado", "Completado"),
                            ("Pausado", "Pausado"),
                            ("Rechazado", "Rechazado"),
                        ],
                        default="Visita Técnica",
                        max_length=30,
                        null=True,
                    ),
                ),
                ("visita_tecnica", models.JSONField(blank=True, default=dict)),
                ("medicion", models.JSONField(blank=True, default=dict)),
                ("verificacion", models.JSONField(blank=True, default=dict)),
                ("taller", models.JSONField(blank=True, default=dict)),
                ("deposito", models.JSONField(blank=True, default=dict)),
                ("logistica", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "cliente",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="proyectos",
                        to="crm.cliente",
                    ),
                ),
                (
                    "cotizacion",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="proyectos",
                        to="crm.cotizacion",
                    ),
                ),
                (
                    "vendedor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="proyectos_vendidos",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
    ]
