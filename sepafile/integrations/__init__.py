"""
Optional integrations of the sepafile document model with third party frameworks.
"""
