import logging

from django.contrib.auth import authenticate, get_user_model, login, logout
from django.db.models import Q
from rest_framework import status
from rest_framework.permissions import AllowAny

from core.access import ROLE_ADMIN, can_manage_users
from core.audit import log_event

from .base import EnvelopeAPIView
from .core_serializers import LoginSerializer, RegistroSerializer, SesionSerializer
from .core_views import crear_usuario

logger = logging.getLogger(__name__)

User = get_user_model()


def existe_admin() -> bool:
    return User.objects.filter(Q(groups__name=ROLE_ADMIN) | Q(is_superuser=True), is_active=True).exists()


class LoginView(EnvelopeAPIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data["email"]
        user = authenticate(request, username=email, password=serializer.validated_data["password"])
        if user is None:
            logger.info("Login rechazado para %s", email)
            return self._fail("Email o contraseña incorrectos.", status.HTTP_401_UNAUTHORIZED)

        login(request, user)
        log_event(user, "LOGIN", "auth.User", str(user.pk))
        return self._ok(SesionSerializer(user).data)


class LogoutView(EnvelopeAPIView):
    def post(self, request):
        logout(request)
        return self._ok()


class SessionView(EnvelopeAPIView):
    def get(self, request):
        return self._ok(SesionSerializer(request.user).data)


class RegisterView(EnvelopeAPIView):
    permission_classes = [AllowAny]

    def post(self, request):
        if existe_admin() and not can_manage_users(request.user):
            return self._forbidden("registrar usuarios")

        serializer = RegistroSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = crear_usuario(serializer.validated_data)
        log_event(
            request.user,
            "CREATE",
            "auth.User",
            str(user.pk),
            {"email": user.email, "rol": serializer.validated_data["rol"], "registro": True},
        )
        return self._ok(SesionSerializer(user).data["user"], status.HTTP_201_CREATED)


class CheckFirstAdminView(EnvelopeAPIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request):
        return self._ok({"is_first_admin": not existe_admin()})
