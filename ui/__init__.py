"""Web backend for site-publisher."""
