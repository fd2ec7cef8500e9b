ADMIN_ROLE = "SUPERUSER"
DEFAULT_ROLE = "USER"
PERMISSIONS = ("read", "write", "delete", "admin", "moderate")
