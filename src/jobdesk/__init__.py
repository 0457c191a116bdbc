"""
jobdesk - admin action dispatch for a distributed load-job console.

Packages:
    jobdesk.core   Errors, Result, settings, logging, models, entity stores
    jobdesk.ops    Action router, access gate, confirmation, batch executor
    jobdesk.api    FastAPI transport
    jobdesk.cli    Typer command line
"""

__version__ = "0.1.0"
