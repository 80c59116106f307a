"""
person_registry.api.routers

HTTP routers: health probes, addresses, people.
"""
