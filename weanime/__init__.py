"""WeAnime API: per-profile, in-memory request rate limiting."""
