"""Built-in plugins registered by every World."""
