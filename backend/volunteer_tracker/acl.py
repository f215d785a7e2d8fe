"""Role constants.

Only two roles exist.  Parents log hours for their own family; admins run
the management console.  Keeping the names here avoids string literals
drifting apart between the auth dependency and the routes.
"""

ROLE_PARENT = "parent"
ROLE_ADMIN = "admin"

ALL_ROLES = [ROLE_PARENT, ROLE_ADMIN]

DEFAULT_ROLE = ROLE_PARENT


def is_valid_role(role: str) -> bool:
    return role in ALL_ROLES
