"""
Jinja2 prompt templates for the optional model-based intent classifier.

Templates:
    intent_classify.j2     Seven-category intent probabilities for one section

Author: ShipIt Suggestion Engine | 2026-10-17
"""
