"""
Data Preparation Module

Field-name harmonization, value cleaning and record ingestion.
"""
