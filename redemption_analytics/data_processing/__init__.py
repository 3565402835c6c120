"""
Data Processing Module

This module contains the aggregation engine utilities including:
- Brand detection
- Filtering and date exclusion
- Distributions, time series and survey parsing
- Metrics, insights and snapshots
"""
