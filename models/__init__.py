from .tenant import Tenant  # noqa: F401
