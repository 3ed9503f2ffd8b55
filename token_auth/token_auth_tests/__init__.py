"""
Tests for the auth_service package

Covers:

- Token issuance and validation (`tokens.py`)
- Credential store and password policy (`store.py`)
- FastAPI application endpoints end to end (`main.py`)
- Database initialization, configuration and auth event logging
"""
