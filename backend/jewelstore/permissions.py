"""
Role and Permission Definitions

Roles are fixed: SUPER_ADMIN runs the platform and has no shop; OWNER,
SALES and ACCOUNTS work inside exactly one shop. Each permission code maps to
the roles that hold it, and route decorators check the caller's role
against this table.
"""


class Role:
    SUPER_ADMIN = "SUPER_ADMIN"
    OWNER = "OWNER"
    SALES = "SALES"
    ACCOUNTS = "ACCOUNTS"


ALL_ROLES = (Role.SUPER_ADMIN, Role.OWNER, Role.SALES, Role.ACCOUNTS)
SHOP_ROLES = (Role.OWNER, Role.SALES, Role.ACCOUNTS)


class PermissionCategory:
    """Permission categories for organization."""
    CUSTOMERS = "CUSTOMERS"
    CATALOG = "CATALOG"
    SALES = "SALES"
    PURCHASING = "PURCHASING"
    FINANCE = "FINANCE"
    REPORTS = "REPORTS"
    RATES = "RATES"
    SHOP = "SHOP"
    PLATFORM = "PLATFORM"


# Each permission is defined as: (code, description, category, roles)
PERMISSION_DEFINITIONS = [
    # CUSTOMERS
    ("CUSTOMER_CREATE", "Create customers", PermissionCategory.CUSTOMERS, (Role.OWNER, Role.SALES)),
    ("CUSTOMER_EDIT", "Edit customers and family members", PermissionCategory.CUSTOMERS, (Role.OWNER, Role.SALES)),
    ("CUSTOMER_DELETE", "Delete customers", PermissionCategory.CUSTOMERS, (Role.OWNER,)),
    ("CUSTOMER_VIEW", "View customers", PermissionCategory.CUSTOMERS, (Role.OWNER, Role.SALES, Role.ACCOUNTS)),

    # CATALOG / STOCK
    ("PRODUCT_CREATE", "Create products", PermissionCategory.CATALOG, (Role.OWNER, Role.SALES)),
    ("PRODUCT_EDIT", "Edit products", PermissionCategory.CATALOG, (Role.OWNER, Role.SALES)),
    ("PRODUCT_DELETE", "Delete products", PermissionCategory.CATALOG, (Role.OWNER,)),
    ("PRODUCT_VIEW", "View products and stock", PermissionCategory.CATALOG, (Role.OWNER, Role.SALES, Role.ACCOUNTS)),
    ("STOCK_MANAGE", "Receive and manage stock items", PermissionCategory.CATALOG, (Role.OWNER, Role.SALES)),

    # SALES
    ("SALES_CREATE", "Create sales orders", PermissionCategory.SALES, (Role.OWNER, Role.SALES)),
    ("SALES_EDIT", "Complete orders and record payments", PermissionCategory.SALES, (Role.OWNER, Role.SALES)),
    ("SALES_DELETE", "Cancel sales orders", PermissionCategory.SALES, (Role.OWNER,)),
    ("SALES_VIEW", "View sales orders", PermissionCategory.SALES, (Role.OWNER, Role.SALES, Role.ACCOUNTS)),

    # PURCHASING
    ("PURCHASE_CREATE", "Create purchase orders", PermissionCategory.PURCHASING, (Role.OWNER, Role.ACCOUNTS)),
    ("PURCHASE_EDIT", "Edit purchase orders", PermissionCategory.PURCHASING, (Role.OWNER, Role.ACCOUNTS)),
    ("PURCHASE_DELETE", "Delete purchase orders", PermissionCategory.PURCHASING, (Role.OWNER,)),
    ("PURCHASE_VIEW", "View purchase orders", PermissionCategory.PURCHASING, (Role.OWNER, Role.ACCOUNTS)),
    ("SUPPLIER_CREATE", "Create suppliers", PermissionCategory.PURCHASING, (Role.OWNER, Role.ACCOUNTS)),
    ("SUPPLIER_EDIT", "Edit suppliers", PermissionCategory.PURCHASING, (Role.OWNER, Role.ACCOUNTS)),
    ("SUPPLIER_DELETE", "Delete suppliers", PermissionCategory.PURCHASING, (Role.OWNER,)),
    ("SUPPLIER_VIEW", "View suppliers", PermissionCategory.PURCHASING, (Role.OWNER, Role.ACCOUNTS, Role.SALES)),

    # FINANCE
    ("TRANSACTION_CREATE", "Create cash-book entries", PermissionCategory.FINANCE, (Role.OWNER, Role.ACCOUNTS)),
    ("TRANSACTION_VIEW", "View cash-book entries", PermissionCategory.FINANCE, (Role.OWNER, Role.ACCOUNTS)),

    # REPORTS
    ("REPORTS_FINANCIAL", "Financial reports", PermissionCategory.REPORTS, (Role.OWNER, Role.ACCOUNTS)),
    ("REPORTS_INVENTORY", "Inventory reports", PermissionCategory.REPORTS, (Role.OWNER, Role.SALES, Role.ACCOUNTS)),
    ("REPORTS_SALES", "Sales reports", PermissionCategory.REPORTS, (Role.OWNER, Role.SALES, Role.ACCOUNTS)),

    # RATES
    ("RATE_MASTER_EDIT", "Set metal rates and reprice products", PermissionCategory.RATES, (Role.OWNER, Role.ACCOUNTS)),
    ("RATE_MASTER_VIEW", "View metal rates", PermissionCategory.RATES, (Role.OWNER, Role.SALES, Role.ACCOUNTS)),

    # SHOP
    ("SHOP_CONFIG", "Edit shop profile", PermissionCategory.SHOP, (Role.OWNER,)),
    ("USER_MANAGE", "Manage shop staff", PermissionCategory.SHOP, (Role.OWNER,)),
    ("AUDIT_VIEW", "View audit trail", PermissionCategory.SHOP, (Role.OWNER,)),

    # PLATFORM
    ("SUPER_ADMIN_SHOPS_MANAGE", "Create, view and edit all shops", PermissionCategory.PLATFORM, (Role.SUPER_ADMIN,)),
    ("SUPER_ADMIN_USERS_MANAGE", "Create owners for any shop", PermissionCategory.PLATFORM, (Role.SUPER_ADMIN,)),
    ("SUPER_ADMIN_SYSTEM_VIEW", "View all system data", PermissionCategory.PLATFORM, (Role.SUPER_ADMIN,)),
]


PERMISSIONS = {code: frozenset(roles) for code, _desc, _cat, roles in PERMISSION_DEFINITIONS}

# Which roles each role may create
ROLE_CREATION_RULES = {
    Role.SUPER_ADMIN: (Role.OWNER,),
    Role.OWNER: (Role.SALES, Role.ACCOUNTS),
}


def has_permission(role: str | None, permission_code: str) -> bool:
    if not role:
        return False
    roles = PERMISSIONS.get(permission_code)
    if roles is None:
        raise KeyError(f"Unknown permission code: {permission_code}")
    return role in roles


def get_role_permissions(role: str) -> list[str]:
    """All permission codes held by a role, in definition order."""
    return [code for code, _desc, _cat, roles in PERMISSION_DEFINITIONS if role in roles]


def can_create_role(creator_role: str, target_role: str) -> bool:
    return target_role in ROLE_CREATION_RULES.get(creator_role, ())
