"""Terminal front-end for feedview."""
