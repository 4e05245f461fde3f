"""Application layer: policies, filters, lifecycle services, caching and workers."""
