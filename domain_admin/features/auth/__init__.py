"""
Authentication: credential checks, bearer tokens, and permission guards for routes.
"""
