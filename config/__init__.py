"""
Configuration package for Imposter.

Environment-driven settings live in config.settings.
"""
