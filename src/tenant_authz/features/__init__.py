"""Feature packages: cache, invalidation, tenants and authorization."""
