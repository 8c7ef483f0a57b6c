"""Authentication package for the application."""
from .models import (
    ActorContext, TokenData,
    STAFF_ROLES, REVIEWER_ROLES, GRADER_ROLES, DEADLINE_ROLES, REPORT_ROLES, SWEEP_ROLES,
)
from .service import (
    oauth2_scheme, create_access_token, verify_token, decode_actor, get_current_actor, require_roles,
)

__all__ = [
    'ActorContext',
    'TokenData',
    'STAFF_ROLES',
    'REVIEWER_ROLES',
    'GRADER_ROLES',
    'DEADLINE_ROLES',
    'REPORT_ROLES',
    'SWEEP_ROLES',
    'create_access_token',
    'verify_token',
    'decode_actor',
    'get_current_actor',
    'require_roles',
    'oauth2_scheme',
]
