# Middleware package init
"""
Noteworthy Backend - Middleware Package
=========================================

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: assigns the correlation ID every later log line carries
    2. Logging: one access-log line per request with status and duration
    3. GZip / CORS: FastAPI's stock middleware

Authentication is not middleware: the identity is resolved by the
`get_identity` route dependency and passed explicitly to services.
"""
