from .auth import hash_password, verify_password, create_token, get_current_user, require_roles
from .errors import ServiceError
