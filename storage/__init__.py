"""
Relational store for the library backend.

This package contains:
- ORM tables for users, books and loans
- The async store with its transactional unit of work
"""
