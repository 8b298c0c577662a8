"""Logging and Prometheus metrics for ErrorFlow."""
