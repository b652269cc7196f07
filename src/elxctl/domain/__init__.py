"""Domain layer — shipment records, cargo, lifecycle rules, pricing.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
"""
