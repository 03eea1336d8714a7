"""Tutoring Manager package.

Organized by feature modules (students, lessons, payments, packages, purchases,
reports) with a thin Flask controller layer over service/repository layers.
"""

from .main import create_app

__all__ = ["create_app"]
