from __future__ import annotations

from django.conf import settings
from django.db import models

from core.secuencias import guardar_con_codigo
from crm.models import Cliente, Cotizacion


class Proyecto(models.Model):
    ESTADO_VISITA_TECNICA = "Visita Técnica"
    ESTADO_MEDICION = "Medición"
    ESTADO_VERIFICACION = "Verificación"
    ESTADO_TALLER = "Taller"
    ESTADO_DEPOSITO = "Depósito"
    ESTADO_LOGISTICA = "Logística"
    ESTADO_INSTALACION = "Instalación"
    ESTADO_RETIRO_CLIENTE = "Retiro Cliente"
    ESTADO_COMPLETADO = "Completado"
    ESTADO_PAUSADO = "Pausado"
    ESTADO_RECHAZADO = "Rechazado"
    ESTADO_CHOICES = [
        (ESTADO_VISITA_TECNICA, "Visita Técnica"),
        (ESTADO_MEDICION, "Medición"),
        (ESTADO_VERIFICACION, "Verificación"),
        (ESTADO_TALLER, "Taller"),
        (ESTADO_DEPOSITO, "Depósito"),
        (ESTADO_LOGISTICA, "Logística"),
        (ESTADO_INSTALACION, "Instalación"),
        (ESTADO_RETIRO_CLIENTE, "Retiro Cliente"),
        (ESTADO_COMPLETADO, "Completado"),
        (ESTADO_PAUSADO, "Pausado"),
        (ESTADO_RECHAZADO, "Rechazado"),
    ]

    numero_orden = models.CharField(max_length=40, unique=True, blank=True)
    cliente = models.ForeignKey(Cliente, on_delete=models.PROTECT, related_name="proyectos")
    cotizacion = models.ForeignKey(
        Cotizacion,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="proyectos",
    )
    vendedor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="proyectos_vendidos",
    )
    estado_actual = models.CharField(
        max_length=30,
        choices=ESTADO_CHOICES,
        null=True,
        blank=True,
        default=ESTADO_VISITA_TECNICA,
    )
    visita_tecnica = models.JSONField(default=dict, blank=True)
    medicion = models.JSONField(default=dict, blank=True)
    verificacion = models.JSONField(default=dict, blank=True)
    taller = models.JSONField(default=dict, blank=True)
    deposito = models.JSONField(default=dict, blank=True)
    logistica = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return self.numero_orden or f"Proyecto {self.id}"

    def save(self, *args, **kwargs):
        prefix = getattr(settings, "PROYECTO_NUMERO_PREFIX", "OT")
        guardar_con_codigo(self, "numero_orden", prefix, 5, lambda: super(Proyecto, self).save(*args, **kwargs))
