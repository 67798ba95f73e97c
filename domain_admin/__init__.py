"""
Domain admin: role-based access control over a tree of permissions.
"""
