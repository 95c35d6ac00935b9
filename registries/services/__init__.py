"""
Service layer for the registries application.

- ownership: who owns an item / sub-list (every permission check starts here)
- store: lock-and-mutate access to a single item row
- claims: claim arbitration (claim / release / mark bought)
- visibility: viewer-specific projection of items
- collaborators: collaborator aggregate and removal
- invites, registries, items, profiles: the surrounding registry plumbing
"""
