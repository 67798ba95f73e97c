"""
User management feature module.

Each user holds exactly one role; the role decides what the user may do.
"""
