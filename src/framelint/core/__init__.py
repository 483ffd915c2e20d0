"""
Core Package.

Contains the analysis driver:
- Match Engine
- Diagnostic model and Suppression Resolver
- Inline suppression comments
"""
