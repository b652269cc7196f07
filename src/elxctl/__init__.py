"""elxctl — shipment lifecycle core and notification scanner."""

__version__ = "0.1.0"
