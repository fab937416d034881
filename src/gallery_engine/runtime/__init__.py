"""Telemetry and settings shared across the engine."""
