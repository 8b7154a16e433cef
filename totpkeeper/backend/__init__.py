"""
Backend package: Flask API cho totpkeeper.
"""

from .app import app

__all__ = ['app']
