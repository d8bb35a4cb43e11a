"""
Book circulation for the library backend.

This package contains:
- Catalog registration with upload validation and file storage
- The loan ledger coupling loans to book inventory
"""
