"""Terminal client for shared, multi-peer contact books."""
