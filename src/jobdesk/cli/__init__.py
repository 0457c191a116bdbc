"""jobdesk command line (``jobdesk``)."""
