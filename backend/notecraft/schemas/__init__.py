# Schemas package init
"""
Pydantic request/response models: the API contract with the SPA.
"""
