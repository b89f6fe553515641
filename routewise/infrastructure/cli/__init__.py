"""Terminal front-end adapters."""
