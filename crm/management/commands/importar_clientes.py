from pathlib import Path

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from core.audit import log_event
from crm.importacion import ImportacionError, importar_clientes, leer_archivo


class Command(BaseCommand):
    help = "Importa clientes (nombre, teléfono, email, empresa, prioridad, etapa...) desde CSV/XLSX"

    def add_arguments(self, parser):
        parser.add_argument("filepath", type=str)
        parser.add_argument("--vendedor", type=str, default="", help="Email del vendedor asignado")

    def handle(self, *args, **options):
        filepath = Path(options["filepath"])
        if not filepath.exists():
            raise CommandError(f"No existe archivo: {filepath}")

        vendedor = None
        if options["vendedor"]:
            vendedor = get_user_model().objects.filter(username=options["vendedor"].strip().lower()).first()
            if vendedor is None:
                raise CommandError(f"No existe el usuario {options['vendedor']}")

        try:
            rows = leer_archivo(filepath.name, filepath.read_bytes())
        except ImportacionError as exc:
            raise CommandError(str(exc)) from exc
        if not rows:
            raise CommandError("El archivo no tiene filas.")

        result = importar_clientes(rows, vendedor=vendedor)
        log_event(vendedor, "IMPORT", "crm.Cliente", filepath.name, result)
        self.stdout.write(
            self.style.SUCCESS(f"Importación completada: {result['insertados']} insertados, {result['omitidos']} omitidos.")
        )
