"""
User accounts for the library backend.

This package contains:
- Lockout policy and the login service
- Temporary-password recovery and the SMTP mail sender
- Registration of students, librarians and the bootstrap administrator
- Password hashing and session tokens
"""
