"""
Digital library storage and catalog.

This package contains:
- MongoDB connection management
- Book catalog browsing and download tracking
- Reporting aggregations
"""
