"""Infrastructure layer — persistence, mail transports, templates."""
