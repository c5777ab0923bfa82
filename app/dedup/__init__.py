"""
Deduplication stages: existing-id pre-filter, legislation resolution and
offender identity resolution.
"""
