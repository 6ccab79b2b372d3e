# azza_erp/config/__init__.py
"""
azza_erp.config is a PACKAGE.

- Company identity lives in: azza_erp.config.company
- App runtime settings live in: azza_erp.settings
"""

from __future__ import annotations

from .company import company_context

__all__ = ["company_context"]
