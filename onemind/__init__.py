"""
OneMind - Capture Routing Core

Turns free-form voice or photo input into typed life-management records
(expenses, tasks, inventory items).

DESIGN PRINCIPLES:
1. AI suggests → Normalizer completes → Heuristics back it up
2. Every call ends in a well-formed result, never a raw error
3. No shared state between calls
4. Every attempt is traceable by correlation id
5. Inference, media and storage adapters are swappable
"""

__version__ = "1.0.0"
__author__ = "OneMind Team"
