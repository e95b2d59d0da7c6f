"""
Authentication service for Momofin Core.

This module provides authentication services:
- Organization member login
- Member registration by organization admins
- JWT token handling
"""
