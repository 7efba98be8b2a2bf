"""Feed engine services: debounce, preferences, HTTP client, live channel, coordinator."""
