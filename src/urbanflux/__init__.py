"""
UrbanFlux - streaming ETL for NYC 311 service request data.
"""

__version__ = "0.1.0"
