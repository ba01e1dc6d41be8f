"""SIS adapters."""
