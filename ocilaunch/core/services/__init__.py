"""Core application services (admission policy, launch workflow)."""
