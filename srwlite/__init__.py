"""srw-lite: turn-based mobile suit battle simulator with roster progression."""
__version__ = "0.3.0"
