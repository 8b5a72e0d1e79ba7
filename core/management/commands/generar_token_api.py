from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from rest_framework.authtoken.models import Token


class Command(BaseCommand):
    help = "Genera o rota el token API de un usuario (identificado por email)."

    def add_arguments(self, parser):
        parser.add_argument("--email", required=True, help="Email del usuario")
        parser.add_argument(
            "--rotate",
            action="store_true",
            help="Elimina el token previo y crea uno nuevo.",
        )

    def handle(self, *args, **options):
        email = (options.get("email") or "").strip().lower()
        if not email:
            raise CommandError("Debes enviar --email.")

        user = get_user_model().objects.filter(email__iexact=email).first()
        if user is None:
            raise CommandError(f"Usuario no encontrado: {email}")
        if not user.is_active:
            raise CommandError(f"El usuario {email} está inactivo.")

        if options.get("rotate"):
            Token.objects.filter(user=user).delete()
            token = Token.objects.create(user=user)
            action = "rotated"
        else:
            token, created = Token.objects.get_or_create(user=user)
            action = "created" if created else "existing"

        self.stdout.write(self.style.SUCCESS(f"TOKEN_READY email={user.email} action={action} token={token.key}"))
