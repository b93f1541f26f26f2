"""Service layer: zone lifecycle operations over an injected World."""
