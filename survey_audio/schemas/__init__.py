"""
Pydantic schemas for API requests/responses and provider payloads.
"""
