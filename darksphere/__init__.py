"""DarkSphere backend: key-gated registration, caching and moderation."""
