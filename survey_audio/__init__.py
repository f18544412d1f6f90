"""
Survey audio pipeline.
Turns diagnostic survey answers into a personalized spoken audio message,
stores it and syncs it to the CRM.
"""
__version__ = "1.0.0"
