"""Backend package: DB models, services, APIs.

This package holds tenant access rules, notifications, help articles, company
segments, web screenshot capture and LLM job monitoring on top of one
SQLAlchemy schema.
"""
