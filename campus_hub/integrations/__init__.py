"""
Adapters for external collaborators: object storage, notification provider
and auth provider.
"""
