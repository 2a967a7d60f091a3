import logging

from manutencao.error import UnauthorizedError
from manutencao.schemas import Role

logger = logging.getLogger(__name__)

ALL_ROLES = frozenset({Role.admin, Role.funcionario, Role.operador})
STAFF = frozenset({Role.admin, Role.funcionario})
ADMIN_ONLY = frozenset({Role.admin})

# papéis permitidos por operação
OPEN_ORDER = ALL_ROLES
VIEW_ALL_ORDERS = STAFF
START_ORDER = STAFF
CLOSE_ORDER = STAFF
CONSUME = STAFF
VIEW_CATALOG = ALL_ROLES
VIEW_REPORTS = STAFF
MANAGE_EQUIPMENT = ADMIN_ONLY
MANAGE_PARTS = ADMIN_ONLY
MANAGE_USERS = ADMIN_ONLY
BACKUP = ADMIN_ONLY


def has_capability(role: str, allowed: frozenset) -> bool:
    try:
        return Role(role) in allowed
    except ValueError:
        return False


def authorize(user, allowed: frozenset) -> None:
    if not has_capability(user.role, allowed):
        logger.warning("forbidden: user=%s role=%s", user.username, user.role)
        raise UnauthorizedError("Acesso negado para o seu perfil")
