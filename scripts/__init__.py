"""Operational entry points (scheduler tick, system workflow seeding)."""
