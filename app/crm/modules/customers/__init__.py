"""
Customers module (JSON API).

Scope:
- Customers CRUD (create, update, delete, get by uuid)
- Paged listing and paged name suggestions
- Audit events for every mutation
"""
