"""
Core package for the safety riding dashboard.

Submodules provide the REST client and data loading, the reporting
analytics (priority matrix, district recommendations, chart series) and the
Streamlit user interface orchestrated by the top-level `app.py`.
"""

__version__ = "0.1.0"
