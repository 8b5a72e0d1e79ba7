from django.http import HttpRequest, HttpResponse
from django.middleware.security import SecurityMiddleware as DjangoSecurityMiddleware


class HealthCheckSecurityMiddleware(DjangoSecurityMiddleware):
    """SecurityMiddleware que no redirige a HTTPS los chequeos de salud del balanceador."""

    EXEMPT_PATHS = ("/health/",)

    def process_request(self, request: HttpRequest) -> HttpResponse | None:
        if request.path in self.EXEMPT_PATHS:
            return None
        return super().process_request(request)
