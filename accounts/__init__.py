"""
User accounts and authentication.

This package contains:
- Field-level encryption and password hashing
- The credential store for user records
- Access/refresh token issuance and rotation
- Signup, signin, refresh and signout workflows
"""
