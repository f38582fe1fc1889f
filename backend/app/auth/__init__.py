"""Account authentication module.

Provides password accounts with bearer-token sessions:
- bcrypt password hashing
- HS256 JWT access tokens (PyJWT)

Modules:
    - security: hashing and token encode/decode.
    - validation: registration field rules.
    - dependencies: ``get_current_user`` FastAPI dependency.
    - router: /api/auth endpoints.
"""
