"""System modules and the permissions each one grants.

Module permissions are named ``<Module>:<action>`` so a role can hold
``<Module>:*`` for the whole module. Disabled modules are listed but hidden
from customer-facing role editors.
"""

USER_MANAGEMENT = "UserManagement"
CUSTOMER_MANAGEMENT = "CustomerManagement"
ROLE_MANAGEMENT = "RoleManagement"
DOCUMENTS = "Documents"


def _permissions(module: str, actions: list[tuple[str, str]]) -> list[dict]:
    return [
        {"name": f"{module}:{action}", "label": label, "order": order}
        for order, (action, label) in enumerate(actions, start=1)
    ]


SYSTEM_MODULES = [
    {
        "name": USER_MANAGEMENT,
        "label": "User Management",
        "enabled": True,
        "permissions": _permissions(USER_MANAGEMENT, [
            ("viewUsers", "View Users"),
            ("createUser", "Create User"),
            ("inviteUser", "Invite User"),
            ("editUser", "Edit User"),
            ("deleteUser", "Delete User"),
        ]),
    },
    {
        "name": CUSTOMER_MANAGEMENT,
        "label": "Customer Management",
        "enabled": False,
        "permissions": _permissions(CUSTOMER_MANAGEMENT, [
            ("createCustomer", "Create Customer"),
            ("editCustomer", "Edit Customer"),
            ("listCustomers", "List Customers"),
            ("deleteCustomer", "Delete Customer"),
        ]),
    },
    {
        "name": ROLE_MANAGEMENT,
        "label": "Role Management",
        "enabled": False,
        "permissions": _permissions(ROLE_MANAGEMENT, [
            ("viewRoles", "View Roles"),
            ("createRoles", "Create Role"),
            ("editRoles", "Edit Role"),
            ("deleteRoles", "Delete Role"),
        ]),
    },
    {
        "name": DOCUMENTS,
        "label": "Documents",
        "enabled": True,
        "permissions": _permissions(DOCUMENTS, [
            ("viewCategories", "View Categories"),
            ("createCategories", "Create Categories"),
            ("editCategories", "Edit Categories"),
            ("deleteCategories", "Delete Categories"),
            ("viewArticles", "View Articles"),
            ("createArticles", "Create Articles"),
            ("editArticles", "Edit Articles"),
            ("deleteArticles", "Delete Articles"),
        ]),
    },
]


def module_permissions() -> list[dict]:
    """Every module permission as a ``permissions`` catalog row."""
    return [
        {"name": permission["name"], "description": permission["label"]}
        for module in SYSTEM_MODULES
        for permission in module["permissions"]
    ]
