from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import Sucursal
from core.normalizacion import normalizar_nombre
from core.secuencias import guardar_con_codigo


class _DatosEmpresa(models.Model):
    razon_social = models.CharField(max_length=200)
    razon_social_normalizada = models.CharField(max_length=200, db_index=True, editable=False, default="")
    nombre_fantasia = models.CharField(max_length=200, blank=True, default="")
    domicilio = models.CharField(max_length=255, blank=True, default="")
    barrio = models.CharField(max_length=120, blank=True, default="")
    localidad = models.CharField(max_length=120, blank=True, default="")
    provincia = models.CharField(max_length=120, blank=True, default="")
    codigo_postal = models.CharField(max_length=20, blank=True, default="")
    pais = models.CharField(max_length=80, blank=True, default="")
    telefono = models.CharField(max_length=40, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    cuit = models.CharField(max_length=20, blank=True, default="")
    categoria_iva = models.CharField(max_length=60, blank=True, default="")
    inscripto_ganancias = models.BooleanField(default=False)
    notas = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ["razon_social"]

    def __str__(self) -> str:
        return self.razon_social

    def save(self, *args, **kwargs):
        self.razon_social_normalizada = normalizar_nombre(self.razon_social or "")
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)


class Empresa(_DatosEmpresa):
    creado_por = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="crm_empresas_creadas",
    )

    class Meta(_DatosEmpresa.Meta):
        verbose_name = "Empresa"
        verbose_name_plural = "Empresas"


class Proveedor(_DatosEmpresa):
    proveedor_id = models.CharField(max_length=40, blank=True, default="")
    fecha_vto_cai = models.DateField(null=True, blank=True)
    sucursal = models.ForeignKey(Sucursal, on_delete=models.PROTECT, related_name="proveedores")
    creado_por = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="crm_proveedores_creados",
    )

    class Meta(_DatosEmpresa.Meta):
        verbose_name = "Proveedor"
        verbose_name_plural = "Proveedores"


class Cliente(models.Model):
    ETAPA_NUEVO = "Nuevo"
    ETAPA_CONTACTADO = "Contactado"
    ETAPA_COTIZADO = "Cotizado"
    ETAPA_NEGOCIACION = "Negociación"
    ETAPA_GANADO = "Ganado"
    ETAPA_PERDIDO = "Perdido"
    ETAPA_CHOICES = [
        (ETAPA_NUEVO, "Nuevo"),
        (ETAPA_CONTACTADO, "Contactado"),
        (ETAPA_COTIZADO, "Cotizado"),
        (ETAPA_NEGOCIACION, "Negociación"),
        (ETAPA_GANADO, "Ganado"),
        (ETAPA_PERDIDO, "Perdido"),
    ]

    PRIORIDAD_DEFAULT = "Media"

    nombre_completo = models.CharField(max_length=180)
    nombre_normalizado = models.CharField(max_length=180, db_index=True, editable=False)
    email = models.EmailField(blank=True, default="")
    telefono = models.CharField(max_length=40)
    empresa = models.CharField(max_length=200, blank=True, default="")
    empresa_asignada = models.ForeignKey(
        Empresa,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="clientes",
    )
    direccion_empresa = models.CharField(max_length=255, blank=True, default="")
    ciudad_empresa = models.CharField(max_length=120, blank=True, default="")
    pais_empresa = models.CharField(max_length=80, blank=True, default="")
    razon_social = models.CharField(max_length=200, blank=True, default="")
    contacto_empresa = models.CharField(max_length=160, blank=True, default="")
    cuil = models.CharField(max_length=20, blank=True, default="")
    prioridad = models.CharField(max_length=60, blank=True, default=PRIORIDAD_DEFAULT)
    origen_contacto = models.CharField(max_length=120, blank=True, default="")
    direccion = models.CharField(max_length=255, blank=True, default="")
    pais = models.CharField(max_length=80, blank=True, default="")
    dni = models.CharField(max_length=20, blank=True, default="")
    ciudad = models.CharField(max_length=120, blank=True, default="")
    notas = models.TextField(blank=True, default="")
    etapa = models.CharField(max_length=20, choices=ETAPA_CHOICES, default=ETAPA_NUEVO)
    motivo_rechazo = models.CharField(max_length=160, blank=True, default="")
    detalle_rechazo = models.TextField(blank=True, default="")
    vendedor_asignado = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="crm_clientes_asignados",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return self.nombre_completo

    def save(self, *args, **kwargs):
        self.nombre_normalizado = normalizar_nombre(self.nombre_completo or "")
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)


class Nota(models.Model):
    cliente = models.ForeignKey(Cliente, on_delete=models.CASCADE, related_name="notas_cliente")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    contenido = models.TextField()
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"Nota {self.cliente_id}: {self.contenido[:40]}"


class Interaccion(models.Model):
    TIPO_LLAMADA = "Llamada"
    TIPO_WHATSAPP = "WhatsApp"
    TIPO_EMAIL = "Email"
    TIPO_REUNION = "Reunión"
    TIPO_NOTA = "Nota"
    TIPO_CHOICES = [
        (TIPO_LLAMADA, "Llamada"),
        (TIPO_WHATSAPP, "WhatsApp"),
        (TIPO_EMAIL, "Email"),
        (TIPO_REUNION, "Reunión"),
        (TIPO_NOTA, "Nota"),
    ]

    cliente = models.ForeignKey(Cliente, on_delete=models.CASCADE, related_name="interacciones")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    tipo = models.CharField(max_length=20, choices=TIPO_CHOICES)
    nota = models.TextField()
    fecha = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-fecha", "-id"]

    def __str__(self) -> str:
        return f"{self.tipo} · {self.cliente_id}"


class Tarea(models.Model):
    PRIORIDAD_ALTA = "Alta"
    PRIORIDAD_MEDIA = "Media"
    PRIORIDAD_BAJA = "Baja"
    PRIORIDAD_CHOICES = [
        (PRIORIDAD_ALTA, "Alta"),
        (PRIORIDAD_MEDIA, "Media"),
        (PRIORIDAD_BAJA, "Baja"),
    ]

    titulo = models.CharField(max_length=200)
    descripcion = models.TextField(blank=True, default="")
    prioridad = models.CharField(max_length=10, choices=PRIORIDAD_CHOICES, default=PRIORIDAD_BAJA)
    fecha_vencimiento = models.DateField()
    hora_inicio = models.TimeField(null=True, blank=True)
    hora_fin = models.TimeField(null=True, blank=True)
    completada = models.BooleanField(default=False)
    cliente = models.ForeignKey(Cliente, on_delete=models.CASCADE, null=True, blank=True, related_name="tareas")
    vendedor_asignado = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="crm_tareas",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["fecha_vencimiento", "hora_inicio", "id"]

    def __str__(self) -> str:
        return self.titulo


class EtapaCotizacion(models.Model):
    COLOR_DEFAULT = "#cccccc"

    nombre = models.CharField(max_length=120, unique=True)
    color = models.CharField(max_length=20, default=COLOR_DEFAULT)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Etapa de cotización"
        verbose_name_plural = "Etapas de cotización"
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return self.nombre


class FormularioEtapa(models.Model):
    TIPO_TEXTO = "texto"
    TIPO_TEXTAREA = "textarea"
    TIPO_NUMERO = "numero"
    TIPO_PRECIO = "precio"
    TIPO_FECHA = "fecha"
    TIPO_CHECKBOX = "checkbox"
    TIPO_SELECCION = "seleccion"
    TIPO_COMBOBOX = "combobox"
    TIPO_ARCHIVO = "archivo"
    TIPOS_CAMPO = [
        TIPO_TEXTO,
        TIPO_TEXTAREA,
        TIPO_NUMERO,
        TIPO_PRECIO,
        TIPO_FECHA,
        TIPO_CHECKBOX,
        TIPO_SELECCION,
        TIPO_COMBOBOX,
        TIPO_ARCHIVO,
    ]

    etapa = models.OneToOneField(EtapaCotizacion, on_delete=models.CASCADE, related_name="formulario")
    # [{"titulo": str, "tipo": str, "opciones": [str], "requerido": bool}]
    campos = models.JSONField(default=list, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Formulario de etapa"
        verbose_name_plural = "Formularios de etapa"

    def __str__(self) -> str:
        return f"Formulario {self.etapa.nombre}"


class Cotizacion(models.Model):
    # Listas de adjuntos; cada entrada lleva un "uid" propio.
    LISTAS_ADJUNTOS = ["archivos", "facturas", "pagos", "imagenes", "materiales", "tickets"]

    codigo = models.CharField(max_length=40, unique=True, blank=True)
    nombre = models.CharField(max_length=200, blank=True, default="")
    cliente = models.ForeignKey(Cliente, on_delete=models.CASCADE, related_name="cotizaciones")
    vendedor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="crm_cotizaciones",
    )
    etapa = models.ForeignKey(EtapaCotizacion, on_delete=models.PROTECT, related_name="cotizaciones")
    monto_total = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    detalle = models.TextField(blank=True, default="")
    sucursal = models.ForeignKey(Sucursal, on_delete=models.SET_NULL, null=True, blank=True, related_name="cotizaciones")
    tipo_abertura = models.CharField(max_length=120, blank=True, default="")
    como_nos_conocio = models.CharField(max_length=120, blank=True, default="")
    orden = models.PositiveIntegerField(default=0)
    archivos = models.JSONField(default=list, blank=True)
    facturas = models.JSONField(default=list, blank=True)
    pagos = models.JSONField(default=list, blank=True)
    imagenes = models.JSONField(default=list, blank=True)
    materiales = models.JSONField(default=list, blank=True)
    tickets = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Cotización"
        verbose_name_plural = "Cotizaciones"
        ordering = ["etapa", "orden", "-created_at"]

    def __str__(self) -> str:
        return self.codigo or f"Cotización {self.id}"

    def save(self, *args, **kwargs):
        prefix = getattr(settings, "COTIZACION_CODIGO_PREFIX", "COT")
        guardar_con_codigo(self, "codigo", prefix, 3, lambda: super(Cotizacion, self).save(*args, **kwargs))


class HistorialEtapa(models.Model):
    cotizacion = models.ForeignKey(Cotizacion, on_delete=models.CASCADE, related_name="historial_etapas")
    etapa = models.ForeignKey(EtapaCotizacion, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    etapa_nombre = models.CharField(max_length=120, blank=True, default="")
    fecha = models.DateTimeField(default=timezone.now)
    datos_formulario = models.JSONField(default=dict, blank=True)

    class Meta:
        verbose_name = "Historial de etapa"
        verbose_name_plural = "Historial de etapas"
        ordering = ["id"]

    def __str__(self) -> str:
        return f"{self.cotizacion_id} → {self.etapa_id}"

    def save(self, *args, **kwargs):
        if self.etapa_id and not self.etapa_nombre:
            self.etapa_nombre = self.etapa.nombre
        super().save(*args, **kwargs)
