"""
Client side of the admin console: session lifecycle and navigation guard.
"""
