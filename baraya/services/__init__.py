"""
Services layer - session, reports, profile and notification logic.

DESIGN PRINCIPLE:
- Services own state; screens only read it and call methods
- Dependencies are passed in at construction (see baraya.container)
- Cross-service reactions go through the event bus
"""
