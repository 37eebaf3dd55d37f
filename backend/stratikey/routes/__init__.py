"""
HTTP routers.
"""

from stratikey.routes import approval_routes, organization_routes, permission_routes

__all__ = ["approval_routes", "organization_routes", "permission_routes"]
