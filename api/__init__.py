"""
FastAPI RESTful API for the Library Management System.

This module provides a REST API for:
- Student registration, login with temporary lockout and password recovery
- Book catalog listing and registration with uploads
- Loan creation, return and history
- Librarian management for administrators
"""
