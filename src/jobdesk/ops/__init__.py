"""
Admin operation layer.

Every console action arrives as a :class:`RequestContext`, passes through
:class:`ActionRouter`, and comes back as an :class:`Outcome`. Transports
(``jobdesk.api``, ``jobdesk.cli``) only translate to and from those two
types.
"""

from jobdesk.ops.context import Param, Principal, RequestContext, ServerContext
from jobdesk.ops.outcome import Outcome, RawStream, Redirect, StatusLine
from jobdesk.ops.router import ActionRouter, OperationKey, resolve_key

__all__ = [
    "ActionRouter",
    "OperationKey",
    "Outcome",
    "Param",
    "Principal",
    "RawStream",
    "Redirect",
    "RequestContext",
    "ServerContext",
    "StatusLine",
    "resolve_key",
]
