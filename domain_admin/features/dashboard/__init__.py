"""
Landing page statistics for the admin console.
"""
