# Security package init
"""
Noteworthy Backend - Security Package
======================================

What:  Credential verification and request identity, kept free of storage I/O.

Inventory:
    - passwords.py: bcrypt hashing capability (passlib)
    - tokens.py:    TokenService, issues and verifies signed bearer tokens (python-jose)
    - identity.py:  Authenticated / Anonymous request identity and resolution
"""
