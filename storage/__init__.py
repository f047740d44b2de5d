"""
Storage package for the book club API.

This package contains:
- MongoDB connection lifecycle and index creation
- Document enums and identifier helpers
- Repositories, including ownership-gated mutations and the
  reading-progress upsert
"""
