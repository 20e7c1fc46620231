"""Infrastructure backends for aperonix (storage, provider client)."""
