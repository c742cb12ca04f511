"""
WIP Kernel

Read-only foundation for the WIP / debtor balance engine:
- Typed transaction value objects and the transaction sign rule
- Structured JSON logging with request-scoped context
- SQLAlchemy models for the transaction store
- Bounded, read-only selectors over WIP and debtor transactions
"""

__version__ = "0.1.0"
