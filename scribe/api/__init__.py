"""HTTP surface: application factory, health and metrics routes."""
