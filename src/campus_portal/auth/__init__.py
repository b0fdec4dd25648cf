"""Authentication and authorization.

Learn: Three roles log in with their campus id and password:
admin, faculty and student. A successful login yields a short-lived
access JWT and a longer-lived refresh JWT signed with a separate secret.

Every protected route resolves a "current identity" (user id + role) and
role checks are plain FastAPI dependencies layered on top of it.
"""
