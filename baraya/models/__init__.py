"""
Pydantic models for session, report, profile and notification data.

DESIGN PRINCIPLE:
- Models reflect data structure, not business logic
- Server payloads use camelCase; models expose snake_case with aliases
"""
