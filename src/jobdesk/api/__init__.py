"""
HTTP transport for the jobdesk console.

Provides a FastAPI application factory whose endpoints translate form
and query fields into a :class:`~jobdesk.ops.context.RequestContext` and
hand it to the :class:`~jobdesk.ops.router.ActionRouter`. No operation
logic lives here.

Quick start::

    from jobdesk.api import create_app

    app = create_app()  # ready for uvicorn
"""

from jobdesk.api.app import create_app

__all__ = ["create_app"]
