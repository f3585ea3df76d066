"""
Logging and metrics for the ETL pipeline.
"""
