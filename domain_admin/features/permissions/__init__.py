"""
Permission management feature module.

Permissions form a forest through ``parent_id`` references (0 marks a root).
The forest is materialized into an immutable PermissionTree snapshot that
answers traversal, search, deletion and effective-permission queries.
"""
