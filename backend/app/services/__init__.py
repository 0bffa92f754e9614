"""
Services package

Adapters around the order database, the messaging channel, the session
registry and intent resolution.
"""
