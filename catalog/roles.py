"""System roles and the permission catalog seeded by ``init_db.py``.

System roles are protected: the role endpoints refuse to edit or delete them.
"""
from .system_modules import USER_MANAGEMENT

SYSTEM_ADMIN = "system_admin"
CUSTOMER_SUCCESS = "customer_success"
CUSTOMER_ADMIN = "customer_admin"
CUSTOMER_USER = "customer_user"
CUSTOMER_VIEWER = "customer_viewer"

# Roles only system administrators may hand out
PRIVILEGED_ROLES = {SYSTEM_ADMIN, CUSTOMER_SUCCESS}

SYSTEM_ROLES = [
    {
        "name": SYSTEM_ADMIN,
        "description": "Full access to every customer and option table",
        "permissions": ["*"],
        "is_system_role": True,
    },
    {
        "name": CUSTOMER_SUCCESS,
        "description": "Manages the customers assigned to them",
        "permissions": ["customer:*", f"{USER_MANAGEMENT}:*"],
        "is_system_role": True,
    },
    {
        "name": CUSTOMER_ADMIN,
        "description": "Administers a single customer",
        "permissions": ["customer:*", f"{USER_MANAGEMENT}:*"],
        "is_system_role": True,
    },
    {
        "name": CUSTOMER_USER,
        "description": "Regular member of a customer",
        "permissions": ["customer:read", "customer:write"],
        "is_system_role": True,
    },
    {
        "name": CUSTOMER_VIEWER,
        "description": "Read-only member of a customer",
        "permissions": ["customer:read"],
        "is_system_role": True,
    },
]

PERMISSIONS = [
    {"name": "help_articles:manage", "description": "Manage documentation articles and categories"},
    {"name": "notifications:manage", "description": "Send notifications and manage templates"},
]
