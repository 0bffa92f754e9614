"""
Orchestration package

Conversation state machine for the delivery assistant, plus LLM provider
routing and response parsing helpers.
"""
