"""Service layer — caller-facing shipment operations and the notification scanner."""
