from django.conf import settings
from django.db import models
from django.utils import timezone


class Sucursal(models.Model):
    nombre = models.CharField(max_length=120)
    direccion = models.CharField(max_length=255)
    link_pago_abierto = models.CharField(max_length=500, blank=True, default="")
    cbu = models.CharField(max_length=40, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    qr_pago_abierto_img = models.TextField(blank=True, default="")
    alias_img = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Sucursal"
        verbose_name_plural = "Sucursales"
        ordering = ["nombre"]

    def __str__(self) -> str:
        return self.nombre


class UserProfile(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    sucursal = models.ForeignKey(Sucursal, null=True, blank=True, on_delete=models.SET_NULL)
    # data-URI o URL externa
    image = models.TextField(blank=True, default="")
    personal_data = models.JSONField(default=dict, blank=True)
    contact_data = models.JSONField(default=dict, blank=True)
    laboral_data = models.JSONField(default=dict, blank=True)
    financiera_legal_data = models.JSONField(default=dict, blank=True)

    class Meta:
        verbose_name = "Perfil de usuario"
        verbose_name_plural = "Perfiles de usuario"

    def __str__(self) -> str:
        return f"Perfil: {self.user.username}"

    @classmethod
    def de_usuario(cls, user) -> "UserProfile":
        profile, _ = cls.objects.get_or_create(user=user)
        return profile


class RoleAccess(models.Model):
    """Accesos por rol editables desde configuración; reemplazan al mapa estático de core.access."""

    role = models.CharField(max_length=40, unique=True)
    sections = models.JSONField(default=list, blank=True)
    proyecto_stages = models.JSONField(default=list, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Acceso por rol"
        verbose_name_plural = "Accesos por rol"
        ordering = ["role"]

    def __str__(self) -> str:
        return self.role


class Prioridad(models.Model):
    nombre = models.CharField(max_length=60, unique=True)
    activa = models.BooleanField(default=True)

    class Meta:
        verbose_name = "Prioridad"
        verbose_name_plural = "Prioridades"
        ordering = ["nombre"]

    def __str__(self) -> str:
        return self.nombre


class ConfigOpcion(models.Model):
    tipo = models.CharField(max_length=60, db_index=True)
    valor = models.CharField(max_length=160)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Opción de configuración"
        verbose_name_plural = "Opciones de configuración"
        ordering = ["tipo", "valor"]
        constraints = [
            models.UniqueConstraint(fields=["tipo", "valor"], name="uniq_config_opcion_tipo_valor"),
        ]

    def __str__(self) -> str:
        return f"{self.tipo}: {self.valor}"


class AuditLog(models.Model):
    timestamp = models.DateTimeField(default=timezone.now)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL)
    action = models.CharField(max_length=64)  # CREATE/UPDATE/DELETE/MOVE/UNDO/IMPORT/PRODUCE/...
    model = models.CharField(max_length=128)
    object_id = models.CharField(max_length=64, blank=True, default="")
    payload = models.JSONField(default=dict, blank=True)

    class Meta:
        verbose_name = "Bitácora (Audit)"
        verbose_name_plural = "Bitácora (Audit)"
        ordering = ["-timestamp"]

    def __str__(self) -> str:
        return f"{self.timestamp:%Y-%m-%d %H:%M} {self.action} {self.model} {self.object_id}"
