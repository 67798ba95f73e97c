"""
Role management feature module.

A role holds a set of permissions; assignment replaces the whole set.
"""
