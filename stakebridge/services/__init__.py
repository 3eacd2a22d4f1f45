"""Service layer: signing, route execution and the smart-account gateway."""
