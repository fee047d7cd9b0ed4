"""Domain services: one module per entity, each taking the storage explicitly."""
