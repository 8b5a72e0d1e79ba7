from django.contrib.auth.models import AbstractBaseUser, Group

ROLE_VENDEDOR = "vendedor"
ROLE_ADMIN = "admin"
ROLE_GERENTE = "gerente"
ROLE_TECNICO = "tecnico"
ROLE_TECNICO_TALLER = "tecnico_taller"
ROLE_ADMINISTRATIVO = "administrativo"
ROLE_DEPOSITO = "deposito"
ROLE_LOGISTICA = "logistica"
ROLE_POST_VENTA = "post_venta"

ROLE_ORDER = [
    ROLE_ADMIN,
    ROLE_GERENTE,
    ROLE_ADMINISTRATIVO,
    ROLE_VENDEDOR,
    ROLE_POST_VENTA,
    ROLE_TECNICO,
    ROLE_TECNICO_TALLER,
    ROLE_DEPOSITO,
    ROLE_LOGISTICA,
]
DEFAULT_ROLE = ROLE_VENDEDOR

SECTION_PIPELINE = "pipeline"
SECTION_CLIENTES = "clientes"
SECTION_PROYECTOS = "proyectos"
SECTION_SERVICIOS = "servicios"
SECTION_STOCK = "stock"
SECTION_CONTROL_STOCK = "control_stock"
SECTION_NOTIFICACIONES = "notificaciones"
SECTION_USERS = "users"
SECTION_CONFIGURACION = "configuracion"
SECTION_PERFIL = "perfil"

ALL_SECTIONS = [
    SECTION_PIPELINE,
    SECTION_CLIENTES,
    SECTION_PROYECTOS,
    SECTION_SERVICIOS,
    SECTION_STOCK,
    SECTION_CONTROL_STOCK,
    SECTION_NOTIFICACIONES,
    SECTION_USERS,
    SECTION_CONFIGURACION,
    SECTION_PERFIL,
]
BASE_SECTIONS = [SECTION_PERFIL, SECTION_CONFIGURACION, SECTION_NOTIFICACIONES]

STAGE_VISITA_TECNICA = "visita_tecnica"
STAGE_MEDICION = "medicion"
STAGE_VERIFICACION = "verificacion"
STAGE_TALLER = "taller"
STAGE_DEPOSITO = "deposito"
STAGE_LOGISTICA = "logistica"
STAGE_TODOS = "todos"
STAGE_TAREAS = "tareas"

ALL_PROYECTO_STAGES = [
    STAGE_VISITA_TECNICA,
    STAGE_MEDICION,
    STAGE_VERIFICACION,
    STAGE_TALLER,
    STAGE_DEPOSITO,
    STAGE_LOGISTICA,
    STAGE_TODOS,
    STAGE_TAREAS,
]

# Roles ausentes del mapa tienen acceso completo.
ROLE_SECTION_ACCESS = {
    ROLE_VENDEDOR: [SECTION_PIPELINE, SECTION_CLIENTES, *BASE_SECTIONS],
    ROLE_POST_VENTA: [SECTION_PIPELINE, SECTION_CLIENTES, *BASE_SECTIONS],
    ROLE_TECNICO: [SECTION_PROYECTOS, *BASE_SECTIONS],
    ROLE_TECNICO_TALLER: [SECTION_PROYECTOS, *BASE_SECTIONS],
    ROLE_LOGISTICA: [SECTION_PROYECTOS, *BASE_SECTIONS],
    ROLE_DEPOSITO: [SECTION_PROYECTOS, SECTION_STOCK, *BASE_SECTIONS],
    ROLE_ADMINISTRATIVO: [SECTION_PIPELINE, SECTION_CLIENTES, SECTION_PROYECTOS, *BASE_SECTIONS],
    ROLE_GERENTE: list(ALL_SECTIONS),
    ROLE_ADMIN: list(ALL_SECTIONS),
}

ROLE_PROYECTO_STAGE_ACCESS = {
    ROLE_TECNICO: [STAGE_VISITA_TECNICA, STAGE_MEDICION, STAGE_VERIFICACION, STAGE_TAREAS],
    ROLE_TECNICO_TALLER: [STAGE_TALLER, STAGE_TAREAS],
    ROLE_DEPOSITO: [STAGE_DEPOSITO, STAGE_TAREAS],
    ROLE_LOGISTICA: [STAGE_LOGISTICA, STAGE_TAREAS],
    ROLE_ADMINISTRATIVO: [
        STAGE_TODOS,
        STAGE_TAREAS,
        STAGE_VISITA_TECNICA,
        STAGE_MEDICION,
        STAGE_VERIFICACION,
        STAGE_TALLER,
        STAGE_DEPOSITO,
        STAGE_LOGISTICA,
    ],
    ROLE_VENDEDOR: [],
    ROLE_POST_VENTA: [],
}


def _group_names(user: AbstractBaseUser) -> set[str]:
    if not user or not user.is_authenticated:
        return set()
    return set(user.groups.values_list("name", flat=True))


def has_any_role(user: AbstractBaseUser, *roles: str) -> bool:
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return bool(_group_names(user).intersection(set(roles)))


def primary_role(user: AbstractBaseUser) -> str:
    groups = _group_names(user)
    for role in ROLE_ORDER:
        if role in groups:
            return role
    if user and user.is_authenticated and user.is_superuser:
        return ROLE_ADMIN
    return ""


def set_user_role(user: AbstractBaseUser, role: str) -> None:
    """Deja al usuario con un único grupo de rol."""
    if role not in ROLE_ORDER:
        raise ValueError(f"Rol inválido: {role}")
    current = user.groups.filter(name__in=ROLE_ORDER).exclude(name=role)
    if current.exists():
        user.groups.remove(*current)
    group, _ = Group.objects.get_or_create(name=role)
    user.groups.add(group)


def _role_override(role: str):
    from core.models import RoleAccess

    return RoleAccess.objects.filter(role=role).first()


def allowed_sections(user: AbstractBaseUser) -> list[str]:
    if not user or not user.is_authenticated:
        return []
    role = primary_role(user)
    if not role:
        return []
    override = _role_override(role)
    if override is not None:
        return [s for s in override.sections if s in ALL_SECTIONS]
    return list(ROLE_SECTION_ACCESS.get(role, ALL_SECTIONS))


def allowed_proyecto_stages(user: AbstractBaseUser) -> list[str]:
    if not user or not user.is_authenticated:
        return []
    role = primary_role(user)
    if not role:
        return []
    override = _role_override(role)
    if override is not None:
        return [s for s in override.proyecto_stages if s in ALL_PROYECTO_STAGES]
    return list(ROLE_PROYECTO_STAGE_ACCESS.get(role, ALL_PROYECTO_STAGES))


def can_access_section(user: AbstractBaseUser, section: str) -> bool:
    return section in allowed_sections(user)


def can_access_proyecto_stage(user: AbstractBaseUser, stage: str) -> bool:
    return stage in allowed_proyecto_stages(user)


def is_branch_admin(user: AbstractBaseUser) -> bool:
    return has_any_role(user, ROLE_ADMIN, ROLE_GERENTE)


def can_manage_users(user: AbstractBaseUser) -> bool:
    return has_any_role(user, ROLE_ADMIN, ROLE_GERENTE)


def can_manage_role_access(user: AbstractBaseUser) -> bool:
    return has_any_role(user, ROLE_ADMIN)


def can_manage_configuracion(user: AbstractBaseUser) -> bool:
    return has_any_role(user, ROLE_ADMIN, ROLE_GERENTE)


def can_view_clientes(user: AbstractBaseUser) -> bool:
    return can_access_section(user, SECTION_CLIENTES) or can_access_section(user, SECTION_PIPELINE)


def can_view_pipeline(user: AbstractBaseUser) -> bool:
    return can_access_section(user, SECTION_PIPELINE)


def can_manage_pipeline_stages(user: AbstractBaseUser) -> bool:
    return has_any_role(user, ROLE_ADMIN, ROLE_GERENTE) and can_view_pipeline(user)


def can_view_proyectos(user: AbstractBaseUser) -> bool:
    return can_access_section(user, SECTION_PROYECTOS)


def can_view_stock(user: AbstractBaseUser) -> bool:
    return can_access_section(user, SECTION_STOCK) or can_access_section(user, SECTION_CONTROL_STOCK)


def can_manage_stock(user: AbstractBaseUser) -> bool:
    return has_any_role(user, ROLE_ADMIN, ROLE_GERENTE, ROLE_DEPOSITO) and can_view_stock(user)
