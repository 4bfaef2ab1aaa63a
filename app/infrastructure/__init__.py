"""Infrastructure: persistence and service adapters behind application ports."""
