from __future__ import annotations

# Lock regeneration may resolve the whole dependency graph
LOCK_TIMEOUT_SECONDS = 10 * 60.0

# Registry publish builds and uploads the artifact
PUBLISH_TIMEOUT_SECONDS = 15 * 60.0
