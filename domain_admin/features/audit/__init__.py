"""
Audit trail of administrative changes to users, roles and permissions.
"""
