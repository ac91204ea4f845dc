"""
Interfaces module - Adapters that expose the Orchestrator
=========================================================

- web/: FastAPI JSON endpoints (/chat, /hybrid, /specialist-chat)
"""
