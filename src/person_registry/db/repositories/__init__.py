"""
person_registry.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories for the persistence layer.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Each repository method owns exactly one session/transaction; callers never
# pass sessions in, except PersonRepo handing its own to AddressRepo.
