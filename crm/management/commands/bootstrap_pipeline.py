from django.core.management.base import BaseCommand
from django.db import transaction

from crm.models import EtapaCotizacion, FormularioEtapa

ETAPAS_DEFAULT = [
    ("Contacto inicial", "#94a3b8", []),
    (
        "Presupuesto enviado",
        "#60a5fa",
        [
            {"titulo": "Precio", "tipo": FormularioEtapa.TIPO_PRECIO, "opciones": [], "requerido": True},
            {"titulo": "Fecha de envío", "tipo": FormularioEtapa.TIPO_FECHA, "opciones": [], "requerido": False},
        ],
    ),
    (
        "Negociación",
        "#fbbf24",
        [{"titulo": "Precio negociado", "tipo": FormularioEtapa.TIPO_PRECIO, "opciones": [], "requerido": False}],
    ),
    ("Ganado", "#22c55e", []),
    (
        "Perdido",
        "#ef4444",
        [
            {
                "titulo": "Motivo",
                "tipo": FormularioEtapa.TIPO_SELECCION,
                "opciones": ["Precio", "Plazo de entrega", "Eligió competencia", "Sin respuesta"],
                "requerido": True,
            }
        ],
    ),
]


class Command(BaseCommand):
    help = "Crea las etapas de cotización por defecto (no modifica las existentes)."

    @transaction.atomic
    def handle(self, *args, **options):
        created = 0
        for nombre, color, campos in ETAPAS_DEFAULT:
            etapa, was_created = EtapaCotizacion.objects.get_or_create(nombre=nombre, defaults={"color": color})
            if not was_created:
                continue
            created += 1
            if campos:
                FormularioEtapa.objects.create(etapa=etapa, campos=campos)
        self.stdout.write(self.style.SUCCESS(f"Pipeline listo. Etapas nuevas: {created}"))
