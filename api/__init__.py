"""
FastAPI RESTful API for the Book Club application.

This module provides a REST API for:
- User registration, login and optional GitHub login
- Clubs, books, meetings and discussion posts
- Ownership-checked updates and deletes
- Per-user reading progress tracking
"""
