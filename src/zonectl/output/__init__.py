"""Rendering of ServiceResult for terminals (rich) and machines (JSON)."""
