"""
Core domain layer: models, validators, errors and configuration.
"""
