# Generated manually
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Sucursal",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("nombre", models.CharField(max_length=120)),
                ("direccion", models.CharField(max_length=255)),
                ("link_pago_abierto", models.CharField(blank=True, default="", max_length=500)),
                ("cbu", models.CharField(blank=True, default="", max_length=40)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("qr_pago_abierto_img", models.TextField(blank=True, default="")),
                ("alias_img", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"verbose_name": "Sucursal", "verbose_name_plural": "Sucursales", "ordering": ["nombre"]},
        ),
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("image", models.TextField(blank=True, default="")),
                ("personal_data", models.JSONField(blank=True, default=dict)),
                ("contact_data", models.JSONField(blank=True, default=dict)),
                ("laboral_data", models.JSONField(blank=True, default=dict)),
                ("financiera_legal_data", models.JSONField(blank=True, default=dict)),
                ("sucursal", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="core.sucursal")),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, to=settings.AUTH_USER_MODEL)),
            ],
            options={"verbose_name": "Perfil de usuario", "verbose_name_plural": "Perfiles de usuario"},
        ),
        migrations.CreateModel(
            name="RoleAccess",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(max_length=40, unique=True)),
                ("sections", models.JSONField(blank=True, default=list)),
                ("proyecto_stages", models.JSONField(blank=True, default=list)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"verbose_name": "Acceso por rol", "verbose_name_plural": "Accesos por rol", "ordering": ["role"]},
        ),
        migrations.CreateModel(
            name="Prioridad",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("nombre", models.CharField(max_length=60, unique=True)),
                ("activa", models.BooleanField(default=True)),
            ],
            options={"verbose_name": "Prioridad", "verbose_name_plural": "Prioridades", "ordering": ["nombre"]},
        ),
        migrations.CreateModel(
            name="ConfigOpcion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("tipo", models.CharField(db_index=True, max_length=60)),
                ("valor", models.CharField(max_length=160)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Opción de configuración",
                "verbose_name_plural": "Opciones de configuración",
                "ordering": ["tipo", "valor"],
            },
        ),
        migrations.AddConstraint(
            model_name="configopcion",
            constraint=models.UniqueConstraint(fields=("tipo", "valor"), name="uniq_config_opcion_tipo_valor"),
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                ("action", models.CharField(max_length=64)),
                ("model", models.CharField(max_length=128)),
                ("object_id", models.CharField(blank=True, default="", max_length=64)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={"verbose_name": "Bitácora (Audit)", "verbose_name_plural": "Bitácora (Audit)", "ordering": ["-timestamp"]},
        ),
    ]
