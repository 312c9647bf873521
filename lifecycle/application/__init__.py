"""Application layer: ports, DTOs, services and erasure/export use cases."""
