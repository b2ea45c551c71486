"""
Silver Leaf Services
====================

Services:
- llm_service: provider routing, timeouts and retries for model calls
- feedback_analyzer: grading prompt, reply extraction and batch scoring
"""

# Services are imported directly when needed
# Example: from silverleaf.services.feedback_analyzer import analyze_batch

__all__ = [
    'llm_service',
    'feedback_analyzer',
]
