"""
External data-source clients (Open-Meteo, Yahoo Finance chart API, NHC and
Google News RSS). Every client converts transport and payload failures into
``FetchError`` at the boundary.
"""
