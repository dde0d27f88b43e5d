"""
FastAPI REST API for the e-libro digital library.

This module provides a REST API for:
- Account signup, signin and token refresh
- Book catalog browsing and download tracking
- Reports and user administration
"""
